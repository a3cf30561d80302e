"""
Submission serialization.

Projects the value store, filtered by current visibility, into the wire
payload. Multi-valued fields are flattened to one delimiter-joined string.
By default elements are joined as-is, which is lossy when an element
contains the delimiter; ``escape=True`` backslash-escapes instead and
``split_multi_value(..., escape=True)`` reverses it.
"""

from typing import Iterable, Mapping

from stageform.conditions import FieldValue
from stageform.models.definition import FormField
from stageform.models.submission import FieldSubmission, Submission
from stageform.rules import FieldState

DEFAULT_DELIMITER = ","


def join_multi_value(items: Iterable[str], delimiter: str = DEFAULT_DELIMITER, escape: bool = False) -> str:
    """Flatten a multi-valued field to its transport string."""
    if escape:
        items = [
            item.replace("\\", "\\\\").replace(delimiter, "\\" + delimiter) for item in items
        ]
    return delimiter.join(items)


def split_multi_value(text: str, delimiter: str = DEFAULT_DELIMITER, escape: bool = False) -> list[str]:
    """Inverse of :func:`join_multi_value` for consumers of the payload."""
    if text == "":
        return []
    if not escape:
        return text.split(delimiter)

    items: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "\\" and i + 1 < len(text):
            current.append(text[i + 1])
            i += 2
            continue
        if text.startswith(delimiter, i):
            items.append("".join(current))
            current = []
            i += len(delimiter)
            continue
        current.append(text[i])
        i += 1
    items.append("".join(current))
    return items


def serialize_value(value: FieldValue, delimiter: str = DEFAULT_DELIMITER, escape: bool = False) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return join_multi_value(value, delimiter, escape)
    return value


def serialize(
    form_id: str,
    fields: Iterable[FormField],
    values: Mapping[str, FieldValue],
    states: Mapping[str, FieldState],
    delimiter: str = DEFAULT_DELIMITER,
    escape: bool = False,
) -> Submission:
    """
    Build the submission payload.

    Args:
        form_id: Id of the form being submitted.
        fields: Every field, in stage order then field order.
        values: Current value store contents.
        states: Resolved state per field id, computed from the same values.
        delimiter: Separator for multi-valued fields.
        escape: Escape the delimiter inside multi-value elements.

    Returns:
        Submission containing only visible, value-holding fields. File
        fields carry the opaque reference accepted at upload time.
    """
    field_submissions = []
    for field in fields:
        if not field.type.holds_value:
            continue
        state = states.get(field.id)
        if state is None or not state.visible:
            continue
        field_submissions.append(
            FieldSubmission(
                field_id=field.id,
                value=serialize_value(values.get(field.id), delimiter, escape),
            )
        )
    return Submission(form_id=form_id, field_submissions=field_submissions)
