"""
Stage navigation and progress.

A finite-state machine over the ordered stages of a form: the current
stage index (clamped to the valid range) plus a terminal submitted state.
Moving forward is gated by validation of the current stage's visible
fields; moving back is never gated and never discards values.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from stageform.conditions import FieldValue
from stageform.errors import SessionStateError
from stageform.models.definition import FormDefinition, Stage
from stageform.models.validation_result import FieldValidationError
from stageform.validation import validate_stage

logger = logging.getLogger("stageform.navigator")


def progress_percent(current_stage_index: int, total_stages: int) -> float:
    """Completion figure in the 0-100 range: (current index + 1) / total stages."""
    if total_stages <= 0:
        return 0.0
    index = min(max(current_stage_index, 0), total_stages - 1)
    return (index + 1) / total_stages * 100


@dataclass
class NavigationState:
    """Where the session is in the form."""

    current_stage_index: int = 0
    completed_stages: set[int] = field(default_factory=set)
    submitted: bool = False


@dataclass
class StepResult:
    """Outcome of a navigation attempt."""

    accepted: bool
    stage_index: int
    errors: list[FieldValidationError] = field(default_factory=list)
    ready_to_submit: bool = False
    # Set by the session when a final-stage step went on to submit.
    submit_result: Any = None


class StageNavigator:
    """
    Steps through the stages of one form against a shared value store.

    The navigator only reads values. ``advance()`` on the final stage does
    not move; it reports ``ready_to_submit`` so the owner can submit.
    """

    def __init__(
        self,
        definition: FormDefinition,
        values: Mapping[str, FieldValue],
        state: NavigationState | None = None,
    ):
        self.definition = definition
        self.values = values
        self.state = state or NavigationState()
        self.state.current_stage_index = self._clamp(self.state.current_stage_index)

    @property
    def total_stages(self) -> int:
        return self.definition.total_stages

    @property
    def current_index(self) -> int:
        return self.state.current_stage_index

    @property
    def current_stage(self) -> Stage:
        return self.definition.stages[self.current_index]

    @property
    def is_first_stage(self) -> bool:
        return self.current_index == 0

    @property
    def is_final_stage(self) -> bool:
        return self.current_index == self.total_stages - 1

    @property
    def is_submitted(self) -> bool:
        return self.state.submitted

    @property
    def progress(self) -> float:
        return progress_percent(self.current_index, self.total_stages)

    def current_errors(self) -> list[FieldValidationError]:
        return validate_stage(self.current_stage, self.values)

    @property
    def can_advance(self) -> bool:
        return not self.state.submitted and not self.current_errors()

    def advance(self) -> StepResult:
        """Validate the current stage and move to the next one."""
        self._ensure_open()
        errors = self.current_errors()
        index = self.current_index
        if errors:
            logger.info(f"Stage {index} blocked by {len(errors)} validation error(s)")
            return StepResult(accepted=False, stage_index=index, errors=errors)

        self.state.completed_stages.add(index)
        if self.is_final_stage:
            return StepResult(accepted=True, stage_index=index, ready_to_submit=True)

        self.state.current_stage_index = self._clamp(index + 1)
        logger.debug(f"Advanced from stage {index} to {self.current_index}")
        return StepResult(accepted=True, stage_index=self.current_index)

    def retreat(self) -> StepResult:
        """Move to the previous stage. Values and completion marks are kept."""
        self._ensure_open()
        index = self.current_index
        if index == 0:
            return StepResult(accepted=False, stage_index=index)
        self.state.current_stage_index = self._clamp(index - 1)
        logger.debug(f"Moved back from stage {index} to {self.current_index}")
        return StepResult(accepted=True, stage_index=self.current_index)

    def check_submittable(self) -> list[FieldValidationError]:
        """
        Validate the final stage before submitting.

        Raises:
            SessionStateError: If the form was already submitted or the
                current stage is not the final one.
        """
        self._ensure_open()
        if not self.is_final_stage:
            raise SessionStateError(
                f"Submit is only allowed from the final stage "
                f"(current {self.current_index + 1} of {self.total_stages})"
            )
        errors = self.current_errors()
        if not errors:
            self.state.completed_stages.add(self.current_index)
        return errors

    def mark_submitted(self) -> None:
        self._ensure_open()
        self.state.submitted = True

    def _clamp(self, index: int) -> int:
        return min(max(index, 0), max(self.total_stages - 1, 0))

    def _ensure_open(self) -> None:
        if self.state.submitted:
            raise SessionStateError("Form has already been submitted")
