"""Variable interpolation for step fields.

Wraps a Jinja2 environment configured with :class:`StrictUndefined`, so
a reference to an unbound variable raises instead of rendering as an
empty string.
"""

from __future__ import annotations

import re
from typing import Mapping

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

from tforge.pipeline.errors import RenderError, VariableNotFoundError

_UNDEFINED_NAME = re.compile(r"^'([^']+)' is undefined$")


def _split_list(value: str) -> list[str]:
    """Split a comma-separated variable value into trimmed, non-empty items."""
    return [item.strip() for item in str(value).split(",") if item.strip()]


class Renderer:
    """Renders template strings against flat variable bindings."""

    def __init__(self) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters["split_list"] = _split_list

    def render_string(self, template: str, variables: Mapping[str, str]) -> str:
        """Render *template* with *variables*.

        Args:
            template: Template text, e.g. ``"flutter create {{project_name}}"``.
            variables: Flat variable bindings.

        Returns:
            The rendered string.

        Raises:
            VariableNotFoundError: If the template references an unbound
                variable.
            RenderError: If *template* is not a string, cannot be parsed,
                or raises while rendering (for example a failing filter).
        """
        if not isinstance(template, str):
            raise RenderError(
                f"expected template text, got {type(template).__name__}: {template!r}"
            )
        try:
            tmpl = self.env.from_string(template)
        except TemplateSyntaxError as exc:
            raise RenderError(f"failed to parse template string: {exc}") from exc
        try:
            return tmpl.render(dict(variables))
        except UndefinedError as exc:
            message = str(exc)
            match = _UNDEFINED_NAME.match(message)
            name = match.group(1) if match else None
            raise VariableNotFoundError(
                name, f"failed to render template: {message}"
            ) from exc
        except Exception as exc:
            raise RenderError(f"failed to render template: {exc}") from exc
