"""
Data models for the stageform engine.

This module contains Pydantic models for:
- Form definitions (stages, fields, conditions)
- Validation results
- Submissions and transport outcomes
"""

from stageform.models.definition import (
    Condition,
    ConditionAction,
    ConditionOperator,
    FieldType,
    FieldValidation,
    FormDefinition,
    FormField,
    Stage,
)
from stageform.models.submission import (
    FieldSubmission,
    Submission,
    SubmissionOutcome,
)
from stageform.models.validation_result import (
    FieldValidationError,
    ValidationResult,
)

__all__ = [
    # Definition
    "Condition",
    "ConditionAction",
    "ConditionOperator",
    "FieldType",
    "FieldValidation",
    "FormDefinition",
    "FormField",
    "Stage",
    # Submission
    "FieldSubmission",
    "Submission",
    "SubmissionOutcome",
    # Validation
    "FieldValidationError",
    "ValidationResult",
]
