"""
Form definition models.

A form definition is an ordered list of stages, each holding an ordered
list of fields. Fields carry a type, optional validation constraints and
zero or more conditions that reference other fields' live values.

These models hold the *normalized* definition. Raw documents from the
form host go through :mod:`stageform.loader` first.
"""

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    """Canonical field types understood by the engine."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX_GROUP = "checkbox-group"
    DATE = "date"
    FILE = "file"
    URL = "url"
    PASSWORD = "password"
    STATIC_TEXT = "static-text"

    @property
    def is_multi_valued(self) -> bool:
        return self is FieldType.CHECKBOX_GROUP

    @property
    def is_choice(self) -> bool:
        return self in (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX_GROUP)

    @property
    def holds_value(self) -> bool:
        return self is not FieldType.STATIC_TEXT


class ConditionOperator(str, Enum):
    """Comparison applied to the target field's current value."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    def negated(self) -> "ConditionOperator":
        return _NEGATIONS[self]


_NEGATIONS = {
    ConditionOperator.EQUALS: ConditionOperator.NOT_EQUALS,
    ConditionOperator.NOT_EQUALS: ConditionOperator.EQUALS,
    ConditionOperator.CONTAINS: ConditionOperator.NOT_CONTAINS,
    ConditionOperator.NOT_CONTAINS: ConditionOperator.CONTAINS,
    ConditionOperator.IS_EMPTY: ConditionOperator.IS_NOT_EMPTY,
    ConditionOperator.IS_NOT_EMPTY: ConditionOperator.IS_EMPTY,
}


class ConditionAction(str, Enum):
    """Effect of a condition that holds. Show/hide and require/make_optional are independent axes."""

    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    MAKE_OPTIONAL = "make_optional"


class Condition(BaseModel):
    """A rule: if <target field> <operator> <value> then <action>."""

    target_field_id: str = Field(..., description="Id of the field whose value is tested")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: str = Field(default="", description="Comparand (ignored by is_empty/is_not_empty)")
    action: ConditionAction = Field(..., description="Action applied when the condition holds")

    model_config = {"frozen": True}


class FieldValidation(BaseModel):
    """Optional validation constraints for a field."""

    min: int | float | None = Field(default=None, description="Minimum numeric value")
    max: int | float | None = Field(default=None, description="Maximum numeric value")
    pattern: str | None = Field(default=None, description="Regex the value must match")
    message: str | None = Field(default=None, description="Custom message overriding generated ones")
    allowed_file_types: list[str] | None = Field(
        default=None, description="Accepted file extensions for file fields"
    )
    max_file_size: int | None = Field(default=None, description="Maximum upload size in bytes")


class FormField(BaseModel):
    """A single named, typed data-entry unit."""

    id: str = Field(..., description="Unique field id")
    name: str = Field(..., description="Field name/key")
    label: str = Field(..., description="Human-readable label")
    type: FieldType = Field(..., description="Canonical field type")
    description: str | None = Field(default=None, description="Help text")
    placeholder: str | None = Field(default=None, description="Placeholder text")
    options: list[str] | None = Field(default=None, description="Choices for select/radio/checkbox-group")
    validation: FieldValidation | None = Field(default=None, description="Validation constraints")
    base_required: bool = Field(default=False, description="Requiredness before conditions apply")
    conditions: list[Condition] = Field(default_factory=list, description="Ordered conditional rules")


class Stage(BaseModel):
    """An ordered group of fields presented together as one step."""

    id: str = Field(..., description="Unique stage id")
    title: str = Field(..., description="Stage title")
    description: str | None = Field(default=None, description="Stage description")
    fields: list[FormField] = Field(default_factory=list, description="Fields in display order")


class FormDefinition(BaseModel):
    """Complete, normalized form definition."""

    id: str = Field(..., description="Form identifier")
    title: str = Field(..., description="Form title")
    description: str | None = Field(default=None, description="Form description")
    stages: list[Stage] = Field(..., description="Stages in display order")
    submit_button_text: str = Field(default="Submit", description="Submit button text")

    @property
    def total_stages(self) -> int:
        return len(self.stages)

    def iter_fields(self) -> Iterator[FormField]:
        """Yield every field in stage order, then field order."""
        for stage in self.stages:
            yield from stage.fields

    def get_field(self, field_id: str) -> FormField | None:
        for field in self.iter_fields():
            if field.id == field_id:
                return field
        return None

    def field_ids(self) -> list[str]:
        return [field.id for field in self.iter_fields()]
