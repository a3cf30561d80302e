"""
Submission wire models.

The payload uses the camelCase keys the form host expects
(``formId``, ``fieldSubmissions``, ``fieldId``); Python code uses the
snake_case attribute names.
"""

from typing import Any

from pydantic import BaseModel, Field


class FieldSubmission(BaseModel):
    """One field id / value pair in a submission."""

    field_id: str = Field(..., alias="fieldId")
    value: str = Field(...)

    model_config = {"populate_by_name": True}


class Submission(BaseModel):
    """Visibility-filtered, serialized set of field values for one form."""

    form_id: str = Field(..., alias="formId")
    field_submissions: list[FieldSubmission] = Field(default_factory=list, alias="fieldSubmissions")

    model_config = {"populate_by_name": True}

    def field_ids(self) -> list[str]:
        return [item.field_id for item in self.field_submissions]

    def as_dict(self) -> dict[str, str]:
        """Field id -> serialized value."""
        return {item.field_id: item.value for item in self.field_submissions}

    def to_payload(self) -> dict[str, Any]:
        """Export the JSON body sent to the form host."""
        return self.model_dump(by_alias=True)


class SubmissionOutcome(BaseModel):
    """What the transport boundary reports back about a submission."""

    success: bool = Field(..., description="Whether the host accepted the submission")
    message: str = Field(default="", description="Host message or failure reason")
    submission_id: str | None = Field(default=None, description="Id assigned by the host, if any")
