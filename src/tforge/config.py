"""Runtime settings and the saved project recipe.

Settings are read from environment variables; the recipe records which
templates and parameters a project was created with so ``tforge resume``
can rebuild the same run.

Environment variables:
    TFORGE_TEMPLATES_DIR: Directories of ``<name>/template.toml`` manifests,
        separated by ``os.pathsep``.  When two directories define the same
        template, the earlier directory wins.
    TFORGE_STATE_FILE: State file name, relative to the project directory.
    TFORGE_RECIPE_FILE: Recipe file name, relative to the project directory.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tforge.pipeline.errors import TforgeError

DEFAULT_TEMPLATES_DIR = "templates"
DEFAULT_STATE_FILE = ".tforge-state.json"
DEFAULT_RECIPE_FILE = ".tforge-recipe.json"


class ConfigError(TforgeError):
    """Settings or the recipe file could not be loaded."""


@dataclass(frozen=True)
class Settings:
    templates_dirs: tuple[Path, ...] = (Path(DEFAULT_TEMPLATES_DIR),)
    state_file: str = DEFAULT_STATE_FILE
    recipe_file: str = DEFAULT_RECIPE_FILE

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``TFORGE_*`` environment variables."""
        return cls(
            templates_dirs=tuple(
                Path(entry)
                for entry in os.environ.get(
                    "TFORGE_TEMPLATES_DIR", DEFAULT_TEMPLATES_DIR
                ).split(os.pathsep)
                if entry
            ),
            state_file=os.environ.get("TFORGE_STATE_FILE", DEFAULT_STATE_FILE),
            recipe_file=os.environ.get("TFORGE_RECIPE_FILE", DEFAULT_RECIPE_FILE),
        )

    def state_path(self, project_dir: Path) -> Path:
        return project_dir / self.state_file

    def recipe_path(self, project_dir: Path) -> Path:
        return project_dir / self.recipe_file


@dataclass
class Recipe:
    """The template selection and parameters a project was created with."""

    project_name: str
    templates: list[str] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "templates": list(self.templates),
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recipe:
        return cls(
            project_name=data["project_name"],
            templates=list(data.get("templates", [])),
            parameters={k: str(v) for k, v in data.get("parameters", {}).items()},
        )

    def save_to_file(self, path: str | Path) -> None:
        """Write the recipe to *path* as JSON, creating parent directories.

        Raises:
            ConfigError: If the file cannot be written.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict(), indent=2))
        except OSError as exc:
            raise ConfigError(f"failed to write {path}: {exc}") from exc

    @classmethod
    def load_from_file(cls, path: str | Path) -> Recipe:
        """Load a recipe from *path*.

        Raises:
            ConfigError: If the file is missing or malformed.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"No recipe file found at {path}.")
        try:
            return cls.from_dict(json.loads(path.read_text()))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ConfigError(f"failed to parse {path}: {exc}") from exc
