"""tforge pipeline - dependency-ordered, resumable template execution.

Resolves the order of template manifests, gates steps on conditions,
renders step fields from variable bindings, executes steps through the
shell or git, and persists per-step state so failed runs can resume.
"""

from tforge.pipeline.conditions import evaluate_condition
from tforge.pipeline.engine import PipelineEngine
from tforge.pipeline.errors import (
    CircularDependencyError,
    CommandFailedError,
    ManifestError,
    MissingFieldError,
    PipelineError,
    ProcessLaunchError,
    RenderError,
    StateError,
    StepError,
    TemplateNotFoundError,
    TforgeError,
    UnknownStepTypeError,
    UnsupportedConditionSyntaxError,
    VariableNotFoundError,
)
from tforge.pipeline.executor import execute_step
from tforge.pipeline.models import (
    Dependencies,
    ParamDef,
    StepContext,
    StepDef,
    StepResult,
    StepType,
    TemplateInfo,
    TemplateManifest,
    bind_variables,
)
from tforge.pipeline.parser import parse_manifest_file, parse_manifest_string
from tforge.pipeline.registry import TemplateRegistry
from tforge.pipeline.renderer import Renderer
from tforge.pipeline.resolver import resolve_order
from tforge.pipeline.state import PipelineState, StepState, StepStatus

__all__ = [
    "CircularDependencyError",
    "CommandFailedError",
    "Dependencies",
    "ManifestError",
    "MissingFieldError",
    "ParamDef",
    "PipelineEngine",
    "PipelineError",
    "PipelineState",
    "ProcessLaunchError",
    "RenderError",
    "Renderer",
    "StateError",
    "StepContext",
    "StepDef",
    "StepError",
    "StepResult",
    "StepState",
    "StepStatus",
    "StepType",
    "TemplateInfo",
    "TemplateManifest",
    "TemplateNotFoundError",
    "TemplateRegistry",
    "TforgeError",
    "UnknownStepTypeError",
    "UnsupportedConditionSyntaxError",
    "VariableNotFoundError",
    "bind_variables",
    "evaluate_condition",
    "execute_step",
    "parse_manifest_file",
    "parse_manifest_string",
    "resolve_order",
]
