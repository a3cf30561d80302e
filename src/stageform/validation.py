"""
Field and stage validation.

Validation outcomes are returned as data (:class:`FieldValidationError`),
never raised. Hidden fields always pass, whatever their resolved
requiredness or stored value.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping
from urllib.parse import urlparse

from stageform.conditions import FieldValue, is_empty
from stageform.models.definition import FieldType, FormDefinition, FormField, Stage
from stageform.models.validation_result import FieldValidationError, ValidationResult
from stageform.rules import resolve

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EMAIL_MESSAGE = "Please enter a valid email address"
URL_MESSAGE = "Please enter a valid URL (must start with http:// or https://)"
NUMBER_MESSAGE = "Please enter a valid number"
PHONE_MESSAGE = "Please enter a valid phone number with country code (e.g., +250788123456)"
DATE_MESSAGE = "Please enter a valid date (YYYY-MM-DD)"


def parse_number(value: str) -> Decimal | None:
    """Parse a decimal number, or return None if the text is not one."""
    try:
        number = Decimal(value.strip())
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def _format_bound(bound: int | float) -> str:
    return f"{bound:g}"


def _error(field: FormField, error_type: str, message: str, **extra) -> FieldValidationError:
    return FieldValidationError(field_id=field.id, error_type=error_type, message=message, **extra)


# Format checks, one per field type. Each receives a present (non-empty)
# value and returns an error or None.

def _check_nothing(field: FormField, value: FieldValue) -> FieldValidationError | None:
    return None


def _check_email(field: FormField, value: FieldValue) -> FieldValidationError | None:
    if not EMAIL_PATTERN.match(value):
        return _error(field, "format", EMAIL_MESSAGE, expected="email", received=value)
    return None


def _check_url(field: FormField, value: FieldValue) -> FieldValidationError | None:
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        parsed = None
    if parsed is None or parsed.scheme not in ("http", "https") or not parsed.netloc:
        return _error(field, "format", URL_MESSAGE, expected="url", received=value)
    return None


def _check_number(field: FormField, value: FieldValue) -> FieldValidationError | None:
    if parse_number(value) is None:
        return _error(field, "format", NUMBER_MESSAGE, expected="number", received=value)
    return None


def _check_phone(field: FormField, value: FieldValue) -> FieldValidationError | None:
    compact = re.sub(r"[\s-]", "", value)
    if not PHONE_PATTERN.match(compact):
        return _error(field, "format", PHONE_MESSAGE, expected="phone", received=value)
    return None


def _check_date(field: FormField, value: FieldValue) -> FieldValidationError | None:
    if not DATE_PATTERN.match(value):
        return _error(field, "format", DATE_MESSAGE, expected="date", received=value)
    try:
        date.fromisoformat(value)
    except ValueError:
        return _error(field, "format", DATE_MESSAGE, expected="date", received=value)
    return None


def _check_option(field: FormField, value: FieldValue) -> FieldValidationError | None:
    options = field.options or []
    chosen = value if isinstance(value, list) else [value]
    unknown = [item for item in chosen if item not in options]
    if unknown:
        return _error(
            field,
            "option",
            f"{field.label} must be one of the available options",
            expected=options,
            received=value,
        )
    return None


FORMAT_CHECKS: dict[FieldType, Callable[[FormField, FieldValue], FieldValidationError | None]] = {
    FieldType.TEXT: _check_nothing,
    FieldType.TEXTAREA: _check_nothing,
    FieldType.PASSWORD: _check_nothing,
    FieldType.EMAIL: _check_email,
    FieldType.PHONE: _check_phone,
    FieldType.NUMBER: _check_number,
    FieldType.URL: _check_url,
    FieldType.DATE: _check_date,
    FieldType.SELECT: _check_option,
    FieldType.RADIO: _check_option,
    FieldType.CHECKBOX_GROUP: _check_option,
    FieldType.FILE: _check_nothing,
    FieldType.STATIC_TEXT: _check_nothing,
}


def _check_constraints(field: FormField, value: FieldValue) -> FieldValidationError | None:
    rules = field.validation
    if rules is None or not isinstance(value, str):
        return None

    number = parse_number(value)
    if number is not None:
        if rules.min is not None and number < Decimal(str(rules.min)):
            message = rules.message or f"{field.label} must be at least {_format_bound(rules.min)}"
            return _error(field, "minimum", message, expected=rules.min, received=value)
        if rules.max is not None and number > Decimal(str(rules.max)):
            message = rules.message or f"{field.label} must be at most {_format_bound(rules.max)}"
            return _error(field, "maximum", message, expected=rules.max, received=value)

    if rules.pattern and not re.search(rules.pattern, value):
        message = rules.message or f"{field.label} format is invalid"
        return _error(field, "pattern", message, expected=rules.pattern, received=value)

    return None


def validate_field(
    field: FormField,
    required: bool,
    value: FieldValue,
    visible: bool = True,
) -> FieldValidationError | None:
    """
    Validate one field's current value.

    Args:
        field: The field descriptor.
        required: Resolved requiredness.
        value: Current value from the store.
        visible: Resolved visibility. Hidden fields always pass.

    Returns:
        The first error found, or None if the value is acceptable.
    """
    if not visible or not field.type.holds_value:
        return None

    if is_empty(value) or (isinstance(value, str) and value.strip() == ""):
        if required:
            return _error(field, "required", f"{field.label} is required")
        return None

    error = FORMAT_CHECKS[field.type](field, value)
    if error is not None:
        return error
    return _check_constraints(field, value)


def validate_fields(
    fields: list[FormField],
    values: Mapping[str, FieldValue],
) -> list[FieldValidationError]:
    errors: list[FieldValidationError] = []
    for field in fields:
        state = resolve(field, values)
        error = validate_field(field, state.required, values.get(field.id), visible=state.visible)
        if error is not None:
            errors.append(error)
    return errors


def validate_stage(stage: Stage, values: Mapping[str, FieldValue]) -> list[FieldValidationError]:
    """Validate the visible fields of one stage; an empty list means the stage is valid."""
    return validate_fields(stage.fields, values)


def validate_form(definition: FormDefinition, values: Mapping[str, FieldValue]) -> ValidationResult:
    """Validate every visible field of the form."""
    return ValidationResult(errors=validate_fields(list(definition.iter_fields()), values))
