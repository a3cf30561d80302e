"""
Exceptions raised by the stageform engine.

Validation failures are not exceptions; see
:class:`stageform.models.validation_result.FieldValidationError`.
"""


class FormEngineError(Exception):
    """Base class for all engine errors."""


class DefinitionError(FormEngineError):
    """A form definition is malformed. Raised once, at load time."""

    def __init__(self, issues: list[str], form_id: str | None = None):
        self.issues = list(issues)
        self.form_id = form_id
        prefix = f"Invalid form definition '{form_id}'" if form_id else "Invalid form definition"
        super().__init__(prefix + ":\n" + "\n".join(f"  - {issue}" for issue in self.issues))


class UnknownFieldError(FormEngineError, KeyError):
    """A field id is not declared by the form definition."""

    def __init__(self, field_id: str):
        self.field_id = field_id
        super().__init__(f"Unknown field: {field_id}")

    def __str__(self) -> str:
        return f"Unknown field: {self.field_id}"


class SessionStateError(FormEngineError):
    """The session's state machine forbids the requested operation."""


class SubmissionInProgressError(SessionStateError):
    """A submission is already in flight for this session."""


class TransportError(FormEngineError):
    """The form host could not be reached or returned garbage."""


class UploadRejectedError(FormEngineError):
    """A selected file does not satisfy the field's upload constraints."""

    def __init__(self, field_id: str, reason: str):
        self.field_id = field_id
        self.reason = reason
        super().__init__(reason)
