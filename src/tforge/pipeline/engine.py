"""Template pipeline execution engine.

Orders templates by dependency, then walks every step of every template
in a single thread.  For each step it:

1. Skips it if a resumed state already records it as completed.
2. Renders and evaluates its condition; a false condition completes the
   step without running anything.
3. Renders the action fields and hands the step to the executor.
4. Records the outcome and, when a state path is configured, writes the
   whole state to disk before moving on.

The first failing step aborts the run.  Steps after it stay pending in
the persisted state until a later resumed run.  Because outcomes are
only recorded after a step returns, a crash during a long command leaves
that step pending; step actions should be safe to run again.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Sequence

from tforge.pipeline.conditions import evaluate_condition
from tforge.pipeline.errors import PipelineError, TforgeError
from tforge.pipeline.executor import execute_step
from tforge.pipeline.models import (
    StepContext,
    StepDef,
    StepResult,
    TemplateManifest,
)
from tforge.pipeline.renderer import Renderer
from tforge.pipeline.resolver import resolve_order
from tforge.pipeline.state import PipelineState, StepStatus

logger = logging.getLogger(__name__)


class PipelineEngine:
    """Runs template steps against a project directory.

    Args:
        project_dir: Root directory that step working directories are
            resolved against.
        renderer: Renderer used for step fields.  A strict
            :class:`Renderer` is created if omitted.
    """

    def __init__(
        self,
        project_dir: str | Path,
        renderer: Renderer | None = None,
    ) -> None:
        self._project_dir = Path(project_dir)
        self._renderer = renderer or Renderer()

    @property
    def project_dir(self) -> Path:
        return self._project_dir

    def run(
        self,
        templates: Sequence[TemplateManifest],
        variables: Mapping[str, str],
    ) -> PipelineState:
        """Execute *templates* without persisting state.

        Returns:
            The in-memory state after every step completed.

        Raises:
            CircularDependencyError: If the templates' dependencies
                form a cycle.
            PipelineError: If a step failed; the cause is chained.
        """
        return self._run(templates, variables, state_path=None, resume=False)

    def run_with_state(
        self,
        templates: Sequence[TemplateManifest],
        variables: Mapping[str, str],
        state_path: str | Path,
        resume: bool,
    ) -> PipelineState:
        """Execute *templates*, persisting state to *state_path* after every step.

        Args:
            templates: Candidate template set.
            variables: Flat variable bindings.
            state_path: Location of the state file.
            resume: Load existing state and skip steps already recorded
                as completed.  When false, the state starts empty and is
                written immediately.

        Returns:
            The state after every step completed.

        Raises:
            CircularDependencyError: If the dependencies form a cycle.
            StateError: If the state file cannot be loaded or saved.
            PipelineError: If a step failed; the cause is chained.
        """
        return self._run(templates, variables, Path(state_path), resume)

    def _run(
        self,
        templates: Sequence[TemplateManifest],
        variables: Mapping[str, str],
        state_path: Path | None,
        resume: bool,
    ) -> PipelineState:
        order = resolve_order(templates)

        if state_path is not None and resume:
            state = PipelineState.load(state_path)
            logger.info("Resuming pipeline from %s", state_path)
        else:
            state = PipelineState()
            self._save_state(state, state_path)

        by_name: dict[str, TemplateManifest] = {}
        for tmpl in templates:
            by_name.setdefault(tmpl.name, tmpl)

        bindings = MappingProxyType(dict(variables))
        ctx = StepContext(project_dir=self._project_dir, variables=bindings)

        logger.info(
            "Running %d template(s) in %s: %s",
            len(order),
            self._project_dir,
            ", ".join(order),
        )

        for name in order:
            tmpl = by_name[name]
            for index, step in enumerate(tmpl.steps):
                if state.get(name, index).status is StepStatus.COMPLETED:
                    logger.debug("[%s] step %d already completed", name, index + 1)
                    continue

                try:
                    result = self._run_step(step, ctx)
                except TforgeError as exc:
                    state.mark_failed(name, index, str(exc))
                    self._save_state(state, state_path)
                    logger.error(
                        "[%s] step %d (%s) failed: %s",
                        name,
                        index + 1,
                        step.step_type,
                        exc,
                    )
                    raise PipelineError(name, index + 1, step.step_type) from exc

                state.mark_completed(name, index)
                self._save_state(state, state_path)

                if result is None:
                    logger.debug(
                        "[%s] step %d condition is false, skipping", name, index + 1
                    )
                elif result is StepResult.SKIPPED:
                    logger.info(
                        "[%s] step %d (%s) already satisfied",
                        name,
                        index + 1,
                        step.step_type,
                    )
                else:
                    logger.info("[%s] step %d (%s) done", name, index + 1, step.step_type)

        logger.info("Pipeline completed")
        return state

    def _run_step(self, step: StepDef, ctx: StepContext) -> StepResult | None:
        """Gate, render and execute *step*.

        Returns ``None`` when the step's condition is false.
        """
        if step.condition is not None:
            condition = self._renderer.render_string(step.condition, ctx.variables)
            if not evaluate_condition(condition, ctx.variables):
                return None

        rendered = replace(
            step,
            command=self._render_optional(step.command, ctx),
            working_dir=self._render_optional(step.working_dir, ctx),
            check=self._render_optional(step.check, ctx),
            url=self._render_optional(step.url, ctx),
        )
        return execute_step(rendered, ctx)

    def _render_optional(self, value: str | None, ctx: StepContext) -> str | None:
        if value is None:
            return None
        return self._renderer.render_string(value, ctx.variables)

    @staticmethod
    def _save_state(state: PipelineState, state_path: Path | None) -> None:
        if state_path is not None:
            state.save(state_path)
