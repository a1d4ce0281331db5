"""Step execution.

Runs one fully rendered :class:`StepDef` in its working directory.  All
processes are launched synchronously and awaited without a timeout.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from tforge.pipeline.errors import (
    CommandFailedError,
    MissingFieldError,
    ProcessLaunchError,
    UnknownStepTypeError,
)
from tforge.pipeline.models import StepContext, StepDef, StepResult, StepType

logger = logging.getLogger(__name__)


def resolve_working_dir(step: StepDef, ctx: StepContext) -> Path:
    """Return the project root joined with the step's working-dir override."""
    if step.working_dir:
        return ctx.project_dir / step.working_dir
    return ctx.project_dir


def execute_step(step: StepDef, ctx: StepContext) -> StepResult:
    """Execute a rendered *step*.

    If the step has an idempotency check and it exits with status 0,
    the main action is skipped.  Otherwise the step is dispatched on its
    type tag.

    Args:
        step: A step whose string fields have already been rendered.
        ctx: Project root and variable bindings for the run.

    Returns:
        :attr:`StepResult.SKIPPED` when the check passed, otherwise
        :attr:`StepResult.EXECUTED`.

    Raises:
        MissingFieldError: The step lacks a field its type requires.
        UnknownStepTypeError: The type tag is not recognised.
        ProcessLaunchError: A process could not be started.
        CommandFailedError: A process exited non-zero.
    """
    working_dir = resolve_working_dir(step, ctx)

    if step.check is not None:
        check = _run_shell(step.check, working_dir, "check command")
        if check.returncode == 0:
            logger.debug("Check passed, skipping step: %s", step.check)
            return StepResult.SKIPPED

    try:
        step_type = StepType(step.step_type)
    except ValueError:
        raise UnknownStepTypeError(step.step_type) from None

    if step_type is StepType.COMMAND:
        _run_command(step, working_dir)
    elif step_type is StepType.GIT:
        _clone_repository(step, working_dir)
    elif step_type is StepType.BUNDLED:
        # File overlays are provided elsewhere; the step always succeeds.
        logger.debug(
            "Bundled step (action=%s, source=%s) is a no-op",
            step.action,
            step.source,
        )
    return StepResult.EXECUTED


def _run_command(step: StepDef, working_dir: Path) -> None:
    if step.command is None:
        raise MissingFieldError(StepType.COMMAND.value, "command")
    proc = _run_shell(step.command, working_dir, "command")
    if proc.returncode != 0:
        raise CommandFailedError(
            f"command failed: {step.command}",
            command=step.command,
            returncode=proc.returncode,
            stderr=proc.stderr,
        )


def _clone_repository(step: StepDef, working_dir: Path) -> None:
    if step.url is None:
        raise MissingFieldError(StepType.GIT.value, "url")
    args = ["git", "clone", "--depth", "1", step.url]
    logger.debug("Running %s in %s", " ".join(args), working_dir)
    try:
        proc = subprocess.run(
            args,
            cwd=working_dir,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise ProcessLaunchError(f"failed to clone: {step.url}: {exc}") from exc
    if proc.returncode != 0:
        raise CommandFailedError(
            f"git clone failed: {step.url}",
            command=" ".join(args),
            returncode=proc.returncode,
            stderr=proc.stderr,
        )


def _run_shell(
    command: str, working_dir: Path, what: str
) -> subprocess.CompletedProcess[str]:
    logger.debug("Running %s in %s: %s", what, working_dir, command)
    try:
        return subprocess.run(
            command,
            shell=True,
            cwd=working_dir,
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        raise ProcessLaunchError(f"failed to run {what}: {command}: {exc}") from exc
