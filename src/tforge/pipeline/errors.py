"""Error hierarchy for the template pipeline.

Every failure raised by the pipeline derives from :class:`TforgeError`.
Step-level failures are wrapped in :class:`PipelineError` by the engine,
with the original exception chained as ``__cause__``.
"""

from __future__ import annotations


class TforgeError(Exception):
    """Base exception for all tforge errors."""


class CircularDependencyError(TforgeError):
    """A ``requires_templates`` cycle was found while ordering templates.

    Attributes:
        template: Name of a template that participates in the cycle.
    """

    def __init__(self, template: str) -> None:
        super().__init__(f"circular dependency detected involving '{template}'")
        self.template = template


class VariableNotFoundError(TforgeError):
    """A condition or template string referenced an unbound variable."""

    def __init__(self, name: str | None, message: str | None = None) -> None:
        super().__init__(message or f"variable '{name}' not found")
        self.name = name


class UnsupportedConditionSyntaxError(TforgeError):
    """A condition matched none of the supported predicate forms."""

    def __init__(self, condition: str) -> None:
        super().__init__(f"unsupported condition syntax: '{condition}'")
        self.condition = condition


class RenderError(TforgeError):
    """A template string could not be parsed or rendered."""


class StepError(TforgeError):
    """Base class for failures raised while executing a single step."""


class MissingFieldError(StepError):
    """A step lacks a field that its type requires."""

    def __init__(self, step_type: str, field: str) -> None:
        super().__init__(f"{step_type} step missing '{field}' field")
        self.step_type = step_type
        self.field = field


class UnknownStepTypeError(StepError):
    def __init__(self, step_type: str) -> None:
        super().__init__(f"unknown step type: {step_type}")
        self.step_type = step_type


class ProcessLaunchError(StepError):
    """An external process could not be started at all."""


class CommandFailedError(StepError):
    """An external process exited with a non-zero status.

    Attributes:
        command: The command line (or clone URL) that failed.
        returncode: Exit status of the process.
        stderr: Captured standard-error text.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        returncode: int,
        stderr: str = "",
    ) -> None:
        if stderr:
            message = f"{message}\n{stderr.rstrip()}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class StateError(TforgeError):
    """Pipeline state could not be read, written, or updated."""


class ManifestError(TforgeError):
    """A template manifest could not be parsed."""


class TemplateNotFoundError(TforgeError):
    def __init__(self, name: str, required_by: str | None = None) -> None:
        if required_by:
            message = (
                f"template '{required_by}' requires missing dependency "
                f"template '{name}'"
            )
        else:
            message = f"template '{name}' not found"
        super().__init__(message)
        self.name = name
        self.required_by = required_by


class PipelineError(TforgeError):
    """A step failed and the run was aborted.

    Attributes:
        template: Name of the template whose step failed.
        step_number: 1-based position of the step within the template.
        step_type: The step's type tag.
    """

    def __init__(self, template: str, step_number: int, step_type: str) -> None:
        super().__init__(f"[{template}] step {step_number} ({step_type}) failed")
        self.template = template
        self.step_number = step_number
        self.step_type = step_type
