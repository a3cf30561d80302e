"""
Form-filling session.

This is the main entry point for stageform. A :class:`FormSession` owns
one value store and one navigation state, re-resolves every field after
each edit, gates stage navigation on validation, and hands the
serialized submission to the transport boundary.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Any

from stageform.config import get_config
from stageform.conditions import FieldValue
from stageform.errors import (
    SessionStateError,
    SubmissionInProgressError,
    TransportError,
    UnknownFieldError,
    UploadRejectedError,
)
from stageform.loader import load_definition
from stageform.models.definition import FieldType, FormDefinition, FormField, Stage
from stageform.models.submission import Submission, SubmissionOutcome
from stageform.models.validation_result import FieldValidationError
from stageform.navigator import StageNavigator, StepResult
from stageform.rules import FieldState, resolve_all
from stageform.serializer import serialize
from stageform.store import ValueStore
from stageform.transport import FormTransport, HttpFormTransport

logger = logging.getLogger("stageform.session")


class SessionStatus(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"


@dataclass
class SubmitResult:
    """Outcome of a submit attempt."""

    submitted: bool
    errors: list[FieldValidationError] = field(default_factory=list)
    outcome: SubmissionOutcome | None = None
    submission: Submission | None = None

    @property
    def transport_failed(self) -> bool:
        """True when validation passed but the form host did not accept the submission."""
        return not self.errors and self.outcome is not None and not self.outcome.success


class FormSession:
    """
    One user's pass through one form.

    Usage:
        session = await FormSession.open("scholarship-2025", HttpFormTransport())

        session.set_value("email", "pilot@agency.rw")
        session.field_state("referral_code").required   # True

        step = await session.next()
        if not step.accepted:
            print(step.errors)

        result = await session.submit()
    """

    def __init__(
        self,
        definition: FormDefinition,
        transport: FormTransport | None = None,
        session_id: str | None = None,
        delimiter: str | None = None,
        escape_multi_values: bool | None = None,
        max_upload_bytes: int | None = None,
    ):
        """
        Initialize the session.

        Args:
            definition: Loaded form definition.
            transport: Boundary used to submit. Optional until submit time.
            session_id: Identifier for this session. Generated if None.
            delimiter: Multi-value separator. If None, uses config.
            escape_multi_values: Escape the delimiter inside elements. If None, uses config.
            max_upload_bytes: Default upload size cap. If None, uses config.
        """
        config = get_config()
        self.definition = definition
        self.transport = transport
        self.session_id = session_id or str(uuid.uuid4()).replace("-", "")
        self.delimiter = delimiter or config.multi_value_delimiter
        self.escape_multi_values = (
            config.escape_multi_values if escape_multi_values is None else escape_multi_values
        )
        self.max_upload_bytes = max_upload_bytes or config.max_upload_bytes

        self.store = ValueStore(definition, delimiter=self.delimiter, escape=self.escape_multi_values)
        self.navigator = StageNavigator(definition, self.store)
        self.status = SessionStatus.EDITING
        self.last_outcome: SubmissionOutcome | None = None
        self.errors: dict[str, FieldValidationError] = {}
        self.field_states: dict[str, FieldState] = {}
        self._refresh()

    @classmethod
    async def open(cls, form_id: str, transport: FormTransport, **kwargs) -> "FormSession":
        """
        Fetch, load and check a definition, then start a session on it.

        Raises:
            TransportError: If the definition cannot be fetched.
            DefinitionError: If the definition is malformed.
        """
        document = await transport.fetch_definition(form_id)
        definition = load_definition(document)
        return cls(definition, transport=transport, **kwargs)

    # State

    @property
    def current_stage(self) -> Stage:
        return self.navigator.current_stage

    @property
    def current_stage_index(self) -> int:
        return self.navigator.current_index

    @property
    def progress(self) -> float:
        return self.navigator.progress

    @property
    def can_advance(self) -> bool:
        return self.status is SessionStatus.EDITING and self.navigator.can_advance

    @property
    def is_submitting(self) -> bool:
        return self.status is SessionStatus.SUBMITTING

    def field_state(self, field_id: str) -> FieldState:
        try:
            return self.field_states[field_id]
        except KeyError:
            raise UnknownFieldError(field_id) from None

    def visible_fields(self, stage: Stage | None = None) -> list[FormField]:
        stage = stage or self.current_stage
        return [f for f in stage.fields if self.field_states[f.id].visible]

    def value(self, field_id: str) -> FieldValue:
        return self.store.get(field_id)

    # Input

    def set_value(self, field_id: str, value: Any) -> dict[str, FieldState]:
        """
        Record a user edit and re-resolve every field.

        Returns:
            The resolved state of every field after the edit.

        Raises:
            UnknownFieldError: If the field id is not a value-holding field.
            SessionStateError: While submitting or once the session has ended.
        """
        self._ensure_editable()
        self.store.set(field_id, value)
        self.errors.pop(field_id, None)
        self._refresh()
        return self.field_states

    def set_values(self, values: dict[str, Any]) -> dict[str, FieldState]:
        self._ensure_editable()
        try:
            for field_id, value in values.items():
                self.store.set(field_id, value)
                self.errors.pop(field_id, None)
        finally:
            self._refresh()
        return self.field_states

    def accept_upload(
        self,
        field_id: str,
        filename: str,
        size: int,
        reference: str | None = None,
    ) -> str:
        """
        Accept a selected file for a file field and store its reference.

        Args:
            field_id: The file field.
            filename: Name of the selected file; its extension is checked.
            size: File size in bytes.
            reference: Storage key from the upload step. Defaults to the filename.

        Returns:
            The reference stored in the value store.

        Raises:
            UploadRejectedError: If the file type or size is not allowed.
        """
        self._check_upload(field_id, filename, size)
        stored = reference or filename
        self.set_value(field_id, stored)
        logger.info(f"Accepted upload for field '{field_id}' in session {self.session_id}")
        return stored

    async def upload_file(
        self,
        field_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Check, upload through the transport, and store the returned reference."""
        self._check_upload(field_id, filename, len(content))
        if self.transport is None:
            raise SessionStateError("Session has no transport to upload through")
        reference = await self.transport.upload(self.definition.id, filename, content, content_type)
        return self.accept_upload(field_id, filename, len(content), reference=reference)

    # Navigation

    async def next(self) -> StepResult:
        """
        Advance one stage, or submit when on the final stage.

        A rejected step leaves the stage index unchanged and reports the
        blocking errors. On the final stage the submit result is attached
        to the returned step.
        """
        self._ensure_editable()
        step = self.navigator.advance()
        if not step.accepted:
            self.errors = {e.field_id: e for e in step.errors}
            return step

        self.errors = {}
        if step.ready_to_submit:
            step.submit_result = await self.submit()
        else:
            logger.info(
                f"Session {self.session_id} moved to stage "
                f"{step.stage_index + 1}/{self.navigator.total_stages}"
            )
        return step

    def previous(self) -> StepResult:
        """Go back one stage. Never validates and never discards values."""
        self._ensure_editable()
        step = self.navigator.retreat()
        if step.accepted:
            self.errors = {}
        return step

    # Submission

    def build_submission(self) -> Submission:
        """Serialize the currently visible fields."""
        return serialize(
            self.definition.id,
            self.definition.iter_fields(),
            self.store,
            self.field_states,
            delimiter=self.delimiter,
            escape=self.escape_multi_values,
        )

    async def submit(self) -> SubmitResult:
        """
        Validate the final stage and send the submission.

        A failed delivery leaves values and navigation untouched so the
        user can retry.

        Raises:
            SubmissionInProgressError: If a submission is already in flight.
            SessionStateError: If not on the final stage, already submitted,
                abandoned, or no transport is configured.
        """
        if self.status is SessionStatus.SUBMITTING:
            raise SubmissionInProgressError(f"Session {self.session_id} is already submitting")
        self._ensure_editable()

        errors = self.navigator.check_submittable()
        if errors:
            self.errors = {e.field_id: e for e in errors}
            logger.info(f"Session {self.session_id} submit blocked by {len(errors)} error(s)")
            return SubmitResult(submitted=False, errors=errors)

        if self.transport is None:
            raise SessionStateError("Session has no transport to submit through")

        submission = self.build_submission()
        self.status = SessionStatus.SUBMITTING
        logger.info(f"Session {self.session_id} submitting form '{self.definition.id}'")
        try:
            outcome = await self.transport.submit(submission)
        except TransportError as e:
            outcome = SubmissionOutcome(success=False, message=str(e))
        except BaseException:
            self.status = SessionStatus.EDITING
            raise

        self.last_outcome = outcome
        if not outcome.success:
            self.status = SessionStatus.EDITING
            logger.warning(f"Session {self.session_id} submission failed: {outcome.message}")
            return SubmitResult(submitted=False, outcome=outcome, submission=submission)

        self.navigator.mark_submitted()
        self.status = SessionStatus.SUBMITTED
        self.store.reset()
        self._refresh()
        logger.info(f"Session {self.session_id} submitted form '{self.definition.id}'")
        return SubmitResult(submitted=True, outcome=outcome, submission=submission)

    def abandon(self) -> None:
        """Discard every value and end the session."""
        if self.status is SessionStatus.SUBMITTING:
            raise SubmissionInProgressError(f"Session {self.session_id} is already submitting")
        self.store.reset()
        self.errors = {}
        self.status = SessionStatus.ABANDONED
        logger.info(f"Session {self.session_id} abandoned")

    # Presentation

    def view(self) -> dict[str, Any]:
        """Plain-dict snapshot of the current stage for presentation layers."""
        stage = self.current_stage
        fields = []
        for f in self.visible_fields(stage):
            state = self.field_states[f.id]
            error = self.errors.get(f.id)
            entry: dict[str, Any] = {
                "id": f.id,
                "name": f.name,
                "label": f.label,
                "type": f.type.value,
                "required": state.enforced_required,
            }
            if f.description:
                entry["description"] = f.description
            if f.placeholder:
                entry["placeholder"] = f.placeholder
            if f.options:
                entry["options"] = f.options
            if f.type.holds_value:
                entry["value"] = self.store.get(f.id)
            if error is not None:
                entry["error"] = error.message
            fields.append(entry)

        return {
            "sessionId": self.session_id,
            "formId": self.definition.id,
            "title": self.definition.title,
            "status": self.status.value,
            "stage": {
                "index": self.current_stage_index,
                "total": self.navigator.total_stages,
                "id": stage.id,
                "title": stage.title,
                "description": stage.description,
            },
            "progress": round(self.progress),
            "completedStages": sorted(self.navigator.state.completed_stages),
            "canAdvance": self.can_advance,
            "isFinalStage": self.navigator.is_final_stage,
            "submitButtonText": self.definition.submit_button_text,
            "fields": fields,
        }

    # Internals

    def _refresh(self) -> None:
        self.field_states = resolve_all(self.definition, self.store)

    def _ensure_editable(self) -> None:
        if self.status is SessionStatus.SUBMITTING:
            raise SessionStateError(f"Session {self.session_id} is submitting")
        if self.status is SessionStatus.SUBMITTED:
            raise SessionStateError("Form has already been submitted")
        if self.status is SessionStatus.ABANDONED:
            raise SessionStateError("Session was abandoned")

    def _check_upload(self, field_id: str, filename: str, size: int) -> None:
        form_field = self.definition.get_field(field_id)
        if form_field is None:
            raise UnknownFieldError(field_id)
        if form_field.type is not FieldType.FILE:
            raise UploadRejectedError(field_id, f"Field '{field_id}' does not accept files")

        rules = form_field.validation
        allowed = [t.lower().lstrip(".") for t in (rules.allowed_file_types or [])] if rules else []
        extension = PurePath(filename).suffix.lower().lstrip(".")
        if allowed and extension not in allowed:
            logger.info(f"Rejected upload for field '{field_id}': file type '{extension}'")
            raise UploadRejectedError(field_id, f"Invalid file type. Allowed: {', '.join(allowed)}")

        max_size = (rules.max_file_size if rules and rules.max_file_size else None) or self.max_upload_bytes
        if size > max_size:
            logger.info(f"Rejected upload for field '{field_id}': {size} bytes")
            raise UploadRejectedError(
                field_id, f"File size must be less than {max_size / (1024 * 1024):g}MB"
            )


async def open_form(form_id: str, transport: FormTransport | None = None, **kwargs) -> FormSession:
    """
    Convenience function to start a session on a form served by the form host.

    Args:
        form_id: Id of the form to fetch.
        transport: Boundary to use. If None, an HttpFormTransport on the configured URL.

    Returns:
        FormSession positioned on the first stage.

    Example:
        >>> session = await open_form("volunteer-intake")
        >>> session.view()["stage"]["title"]
    """
    if transport is None:
        transport = HttpFormTransport()
    return await FormSession.open(form_id, transport, **kwargs)
