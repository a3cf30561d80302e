"""
Condition evaluation.

Pure functions over a snapshot of the value store. Nothing here raises:
a target that has no value yet is treated as empty, and operators were
already checked when the definition was loaded.
"""

from typing import Mapping

from stageform.models.definition import Condition, ConditionOperator

FieldValue = str | list[str] | None


def is_empty(value: FieldValue) -> bool:
    """True for a missing value, an empty string or an empty list."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return len(value) == 0


def _equals(stored: FieldValue, comparand: str) -> bool:
    if stored is None:
        return False
    if isinstance(stored, list):
        # Strict string equality only; a list never equals a scalar comparand.
        return False
    return stored == comparand


def _contains(stored: FieldValue, comparand: str) -> bool:
    if stored is None:
        return False
    # Substring test for strings, element membership for lists.
    return comparand in stored


def evaluate(condition: Condition, values: Mapping[str, FieldValue]) -> bool:
    """
    Evaluate one condition against the current values.

    Args:
        condition: The condition to test.
        values: Field id -> current value. Missing ids read as empty.

    Returns:
        Whether the condition holds.
    """
    stored = values.get(condition.target_field_id)
    operator = condition.operator

    if operator is ConditionOperator.EQUALS:
        return _equals(stored, condition.value)
    if operator is ConditionOperator.NOT_EQUALS:
        return not _equals(stored, condition.value)
    if operator is ConditionOperator.CONTAINS:
        return _contains(stored, condition.value)
    if operator is ConditionOperator.NOT_CONTAINS:
        return not _contains(stored, condition.value)
    if operator is ConditionOperator.IS_EMPTY:
        return is_empty(stored)
    if operator is ConditionOperator.IS_NOT_EMPTY:
        return not is_empty(stored)
    return False
