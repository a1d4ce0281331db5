"""Pipeline state persistence.

Records the outcome of every (template, step index) pair so an
interrupted run can be resumed.  The on-disk format is JSON::

    {
      "steps": {
        "flutter-app": {"0": "Completed", "1": {"Failed": "quota exceeded"}}
      }
    }

Absent entries are pending.  :meth:`PipelineState.save` overwrites the
whole file and is not atomic.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tforge.pipeline.errors import StateError

logger = logging.getLogger(__name__)

_COMPLETED = "Completed"
_FAILED = "Failed"


class StepStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepState:
    """Status of one step, with the failure message when it failed."""

    status: StepStatus
    message: str | None = None

    @classmethod
    def pending(cls) -> StepState:
        return cls(StepStatus.PENDING)

    @classmethod
    def completed(cls) -> StepState:
        return cls(StepStatus.COMPLETED)

    @classmethod
    def failed(cls, message: str) -> StepState:
        return cls(StepStatus.FAILED, message)


@dataclass(frozen=True)
class TemplateProgress:
    """Step counts for one template, as shown by ``tforge status``."""

    total: int
    completed: int
    pending: int
    failed_step: int | None = None
    failure_message: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.failed_step is None and self.pending == 0


class PipelineState:
    """Durable per-step completion/failure record."""

    def __init__(self) -> None:
        self._steps: dict[str, dict[int, StepState]] = {}

    def get(self, template: str, index: int) -> StepState:
        """Return the state of step *index* of *template*.

        Steps without a recorded outcome are pending.
        """
        return self._steps.get(template, {}).get(index, StepState.pending())

    def mark_completed(self, template: str, index: int) -> None:
        self._steps.setdefault(template, {})[index] = StepState.completed()

    def mark_failed(self, template: str, index: int, message: str) -> None:
        """Record that step *index* of *template* failed with *message*.

        Raises:
            StateError: If the step is already completed.  Completed
                steps are never reverted.
        """
        if self.get(template, index).status is StepStatus.COMPLETED:
            raise StateError(
                f"cannot mark completed step {index} of '{template}' as failed"
            )
        self._steps.setdefault(template, {})[index] = StepState.failed(message)

    def progress(self, template: str, step_count: int) -> TemplateProgress:
        """Summarise the first *step_count* steps of *template*."""
        completed = 0
        pending = 0
        failed_step: int | None = None
        failure_message: str | None = None
        for index in range(step_count):
            state = self.get(template, index)
            if state.status is StepStatus.COMPLETED:
                completed += 1
            elif state.status is StepStatus.FAILED:
                failed_step = index + 1
                failure_message = state.message
            else:
                pending += 1
        return TemplateProgress(
            total=step_count,
            completed=completed,
            pending=pending,
            failed_step=failed_step,
            failure_message=failure_message,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record to a JSON-compatible dictionary."""
        steps: dict[str, dict[str, Any]] = {}
        for template, entries in self._steps.items():
            steps[template] = {}
            for index in sorted(entries):
                state = entries[index]
                if state.status is StepStatus.COMPLETED:
                    steps[template][str(index)] = _COMPLETED
                else:
                    steps[template][str(index)] = {_FAILED: state.message or ""}
        return {"steps": steps}

    @classmethod
    def from_dict(cls, data: Any) -> PipelineState:
        """Reconstruct a record produced by :meth:`to_dict`.

        Raises:
            StateError: If *data* does not have the expected shape.
        """
        if not isinstance(data, dict) or not isinstance(data.get("steps", {}), dict):
            raise StateError("malformed pipeline state: expected a 'steps' mapping")
        state = cls()
        for template, entries in data.get("steps", {}).items():
            if not isinstance(entries, dict):
                raise StateError(
                    f"malformed pipeline state for template '{template}'"
                )
            for raw_index, raw_entry in entries.items():
                try:
                    index = int(raw_index)
                except ValueError:
                    raise StateError(
                        f"malformed step index {raw_index!r} for template '{template}'"
                    ) from None
                state._steps.setdefault(template, {})[index] = _parse_entry(
                    template, index, raw_entry
                )
        return state

    @classmethod
    def load(cls, path: str | Path) -> PipelineState:
        """Load state from *path*, or return an empty record if it is absent.

        Raises:
            StateError: If the file cannot be read or is malformed.
        """
        path = Path(path)
        if not path.exists():
            logger.debug("No pipeline state at %s, starting empty", path)
            return cls()
        try:
            data = json.loads(path.read_text())
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StateError(f"failed to load pipeline state from {path}: {exc}") from exc
        return cls.from_dict(data)

    def save(self, path: str | Path) -> None:
        """Overwrite *path* with the full record.

        Parent directories are created automatically.

        Raises:
            StateError: If the file cannot be written.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict(), indent=2))
        except OSError as exc:
            raise StateError(f"failed to save pipeline state to {path}: {exc}") from exc


def _parse_entry(template: str, index: int, raw: Any) -> StepState:
    if raw == _COMPLETED:
        return StepState.completed()
    if isinstance(raw, dict) and set(raw) == {_FAILED} and isinstance(raw[_FAILED], str):
        return StepState.failed(raw[_FAILED])
    raise StateError(f"malformed status for step {index} of template '{template}'")
