"""Template manifest parser.

Reads ``template.toml`` manifests with the standard-library ``tomllib``
and maps them onto :class:`~tforge.pipeline.models.TemplateManifest`.
Only the shape is checked here: a template name, a type tag on every
step, string step fields and string lists for dependencies.  Fields a
step type requires are validated when the step runs.

Example manifest::

    [template]
    name = "flutter-app"
    description = "Flutter mobile application"
    category = "mobile"

    [dependencies]
    required_tools = ["flutter"]

    [[steps]]
    type = "command"
    command = "flutter create {{project_name}}"
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from tforge.pipeline.errors import ManifestError
from tforge.pipeline.models import (
    Dependencies,
    ParamDef,
    StepDef,
    TemplateInfo,
    TemplateManifest,
)

_STEP_FIELDS = ("command", "condition", "check", "working_dir", "url", "action", "source")


def parse_manifest_file(path: str | Path) -> TemplateManifest:
    """Parse the manifest at *path*.

    Raises:
        ManifestError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"reading {path}: {exc}") from exc
    return parse_manifest_string(content, source=str(path))


def parse_manifest_string(content: str, source: str = "<string>") -> TemplateManifest:
    """Parse manifest TOML text.

    Args:
        content: TOML document.
        source: Label used in error messages.

    Raises:
        ManifestError: If the TOML is invalid or required keys are missing.
    """
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(f"parsing {source}: {exc}") from exc

    info = data.get("template")
    if not isinstance(info, dict) or not isinstance(info.get("name"), str):
        raise ManifestError(f"parsing {source}: missing [template] name")

    deps = data.get("dependencies", {})
    params = data.get("parameters", {})
    if not isinstance(deps, dict) or not isinstance(params, dict):
        raise ManifestError(f"parsing {source}: malformed manifest tables")

    return TemplateManifest(
        template=TemplateInfo(
            name=info["name"],
            description=str(info.get("description", "")),
            category=str(info.get("category", "")),
            provider=str(info.get("provider", "command")),
        ),
        dependencies=Dependencies(
            required_tools=_string_list(deps, "required_tools", source),
            requires_templates=_string_list(deps, "requires_templates", source),
        ),
        parameters={
            key: _parse_param(key, raw, source) for key, raw in params.items()
        },
        steps=[
            _parse_step(i, raw, source)
            for i, raw in enumerate(data.get("steps", []))
        ],
    )


def _string_list(table: dict[str, Any], key: str, source: str) -> list[str]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ManifestError(f"parsing {source}: '{key}' must be a list of strings")
    return list(value)


def _parse_param(key: str, raw: Any, source: str) -> ParamDef:
    if not isinstance(raw, dict) or "type" not in raw:
        raise ManifestError(f"parsing {source}: parameter '{key}' has no type")
    return ParamDef(
        param_type=str(raw["type"]),
        prompt=str(raw.get("prompt", "")),
        default=raw.get("default"),
        options=[str(o) for o in raw.get("options", [])],
        when=raw.get("when"),
    )


def _parse_step(index: int, raw: Any, source: str) -> StepDef:
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        raise ManifestError(f"parsing {source}: step {index + 1} has no type")
    fields: dict[str, str] = {}
    for name in _STEP_FIELDS:
        value = raw.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ManifestError(
                f"parsing {source}: step {index + 1} field '{name}' must be a string"
            )
        fields[name] = value
    return StepDef(step_type=raw["type"], **fields)
