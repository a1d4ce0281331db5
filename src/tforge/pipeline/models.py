"""Pipeline data models.

Defines the template manifest structures loaded from ``template.toml``
files, the per-step execution types shared by the executor and the
engine, and the helper that builds a run's variable bindings.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


class StepType(str, enum.Enum):
    """Step type tags understood by the executor."""

    COMMAND = "command"
    GIT = "git"
    BUNDLED = "bundled"


class StepResult(str, enum.Enum):
    """Outcome of a step that did not fail."""

    EXECUTED = "executed"
    SKIPPED = "skipped"


@dataclass
class StepDef:
    """A single unit of work within a template.

    Fields are validated lazily: a step missing a field its type needs
    only fails once the executor reaches it.

    Attributes:
        step_type: Type tag (``command``, ``git`` or ``bundled``).  Kept
            as the raw string so unknown tags survive loading.
        command: Shell command body for ``command`` steps.
        condition: Optional predicate gating the step.
        check: Optional idempotency-check command.
        working_dir: Working directory relative to the project root.
        url: Repository URL for ``git`` steps.
        action: Overlay action for ``bundled`` steps.
        source: Overlay source for ``bundled`` steps.
    """

    step_type: str
    command: str | None = None
    condition: str | None = None
    check: str | None = None
    working_dir: str | None = None
    url: str | None = None
    action: str | None = None
    source: str | None = None


@dataclass
class ParamDef:
    """A user-facing template parameter.

    Consumed by prompting front-ends; the pipeline itself only sees the
    resulting flat variable bindings.
    """

    param_type: str
    prompt: str = ""
    default: Any = None
    options: list[str] = field(default_factory=list)
    when: str | None = None

    def default_as_string(self) -> str | None:
        """Return the default flattened to a variable value, or ``None``.

        Lists become comma-joined strings and booleans become
        ``"true"``/``"false"`` so they can be matched by conditions.
        """
        if self.default is None:
            return None
        if isinstance(self.default, bool):
            return "true" if self.default else "false"
        if isinstance(self.default, list):
            return ",".join(str(item) for item in self.default)
        return str(self.default)


@dataclass
class TemplateInfo:
    name: str
    description: str = ""
    category: str = ""
    provider: str = "command"


@dataclass
class Dependencies:
    """External tools and other templates a template needs."""

    required_tools: list[str] = field(default_factory=list)
    requires_templates: list[str] = field(default_factory=list)


@dataclass
class TemplateManifest:
    """A named, declarative unit of steps.

    Attributes:
        template: Identifying metadata.
        dependencies: Required tools and templates.
        parameters: Parameter definitions keyed by variable name.
        steps: Ordered steps executed by the engine.
    """

    template: TemplateInfo
    dependencies: Dependencies = field(default_factory=Dependencies)
    parameters: dict[str, ParamDef] = field(default_factory=dict)
    steps: list[StepDef] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.template.name


@dataclass(frozen=True)
class StepContext:
    """Execution context handed to the executor for one step.

    Attributes:
        project_dir: Root directory of the project being scaffolded.
        variables: Read-only variable bindings for the run.
    """

    project_dir: Path
    variables: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )


def bind_variables(
    project_name: str, parameters: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Return *parameters* unioned with the mandatory ``project_name`` entry.

    Args:
        project_name: Name of the project being scaffolded.
        parameters: Caller-supplied variable values.

    Returns:
        A new flat mapping where ``project_name`` always wins.
    """
    variables = dict(parameters or {})
    variables["project_name"] = project_name
    return variables
