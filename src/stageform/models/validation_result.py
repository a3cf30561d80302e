"""
Validation result models.

Validation failures are plain data: the validator returns them, it never
raises them.
"""

from typing import Any

from pydantic import BaseModel, Field


class FieldValidationError(BaseModel):
    """Validation error for a specific field."""

    field_id: str = Field(..., description="Id of the field with error")
    error_type: str = Field(..., description="Type of validation error")
    message: str = Field(..., description="Human-readable error message")
    expected: Any | None = Field(default=None, description="Expected value/format")
    received: Any | None = Field(default=None, description="Received value")


class ValidationResult(BaseModel):
    """Result of validating a stage or a whole form."""

    errors: list[FieldValidationError] = Field(
        default_factory=list, description="List of validation errors"
    )

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        """Get the number of validation errors."""
        return len(self.errors)

    def get_field_errors(self, field_id: str) -> list[FieldValidationError]:
        """Get all errors for a specific field."""
        return [e for e in self.errors if e.field_id == field_id]

    def to_error_dict(self) -> dict[str, list[str]]:
        """Convert errors to a dict mapping field ids to error messages."""
        result: dict[str, list[str]] = {}
        for error in self.errors:
            if error.field_id not in result:
                result[error.field_id] = []
            result[error.field_id].append(error.message)
        return result
