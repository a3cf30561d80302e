"""
stageform: a conditional, multi-stage form engine.

Interprets a declarative form definition (ordered stages of ordered
fields, each with a type, validation constraints and conditional rules
over other fields' live values) and drives a steppable data-entry session
that ends in a flat, visibility-filtered submission payload.

Simple Usage:
    from stageform import FormSession, load_definition

    definition = load_definition(document)
    session = FormSession(definition, transport=my_transport)

    session.set_value("email", "pilot@agency.rw")
    step = await session.next()

Fetching from the form host:
    from stageform import open_form

    session = await open_form("volunteer-intake")
    print(session.view())

Pure engine pieces:
    from stageform import evaluate, resolve, validate_field, serialize
"""

from stageform.conditions import evaluate, is_empty
from stageform.errors import (
    DefinitionError,
    FormEngineError,
    SessionStateError,
    SubmissionInProgressError,
    TransportError,
    UnknownFieldError,
    UploadRejectedError,
)
from stageform.loader import (
    check_definition,
    load_definition,
    load_definition_file,
    load_definition_json,
)
from stageform.models import (
    Condition,
    ConditionAction,
    ConditionOperator,
    FieldSubmission,
    FieldType,
    FieldValidation,
    FieldValidationError,
    FormDefinition,
    FormField,
    Stage,
    Submission,
    SubmissionOutcome,
    ValidationResult,
)
from stageform.navigator import (
    NavigationState,
    StageNavigator,
    StepResult,
    progress_percent,
)
from stageform.rules import FieldState, resolve, resolve_all
from stageform.serializer import join_multi_value, serialize, split_multi_value
from stageform.session import FormSession, SessionStatus, SubmitResult, open_form
from stageform.store import ValueStore
from stageform.transport import FormTransport, HttpFormTransport
from stageform.validation import validate_field, validate_form, validate_stage

__all__ = [
    # Main interface
    "FormSession",
    "SessionStatus",
    "SubmitResult",
    "open_form",
    # Loading
    "load_definition",
    "load_definition_file",
    "load_definition_json",
    "check_definition",
    # Models
    "Condition",
    "ConditionAction",
    "ConditionOperator",
    "FieldType",
    "FieldValidation",
    "FormDefinition",
    "FormField",
    "Stage",
    "FieldSubmission",
    "Submission",
    "SubmissionOutcome",
    "FieldValidationError",
    "ValidationResult",
    # Engine
    "evaluate",
    "is_empty",
    "FieldState",
    "resolve",
    "resolve_all",
    "validate_field",
    "validate_stage",
    "validate_form",
    "ValueStore",
    "NavigationState",
    "StageNavigator",
    "StepResult",
    "progress_percent",
    "serialize",
    "join_multi_value",
    "split_multi_value",
    # Transport
    "FormTransport",
    "HttpFormTransport",
    # Errors
    "FormEngineError",
    "DefinitionError",
    "UnknownFieldError",
    "SessionStateError",
    "SubmissionInProgressError",
    "TransportError",
    "UploadRejectedError",
]

__version__ = "0.1.0"
