"""
Value store.

The single mutable map of field id -> current value for one form-filling
session. User input and initialization write it; every other component
only reads it. Values of fields that a condition hides stay in the store
so that re-showing the field restores the last entry.
"""

from collections.abc import Iterable, Iterator, Mapping

from stageform.conditions import FieldValue
from stageform.errors import UnknownFieldError
from stageform.models.definition import FieldType, FormDefinition, FormField
from stageform.serializer import split_multi_value


class ValueStore(Mapping):
    """
    Field values for one session.

    Reads follow the ``Mapping`` protocol; ``get()`` returns ``None`` for a
    field that has not been filled in. Checkbox-group fields always hold a
    list (empty by default); other fields hold a string once set.
    """

    def __init__(self, definition: FormDefinition, delimiter: str = ",", escape: bool = False):
        self._fields: dict[str, FormField] = {
            field.id: field for field in definition.iter_fields() if field.type.holds_value
        }
        self._delimiter = delimiter
        self._escape = escape
        self._values: dict[str, FieldValue] = {}
        self.reset()

    def __getitem__(self, field_id: str) -> FieldValue:
        return self._values[field_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def reset(self) -> None:
        """Discard every value and restore type defaults."""
        self._values = {
            field_id: []
            for field_id, field in self._fields.items()
            if field.type.is_multi_valued
        }

    def set(self, field_id: str, value: object) -> FieldValue:
        """
        Store a user-entered value.

        Args:
            field_id: Declared id of a value-holding field.
            value: ``None`` clears the field. Lists are accepted for
                checkbox-group fields; a string there is split on the
                delimiter, honouring backslash escapes when the store was
                created with ``escape=True``. Numbers are stored in their
                string form.

        Returns:
            The normalized value now held by the store.

        Raises:
            UnknownFieldError: If the id is not a value-holding field.
        """
        field = self._fields.get(field_id)
        if field is None:
            raise UnknownFieldError(field_id)

        normalized = self._normalize(field, value)
        self._values[field_id] = normalized
        return normalized

    def update(self, values: Mapping[str, object]) -> None:
        for field_id, value in values.items():
            self.set(field_id, value)

    def snapshot(self) -> dict[str, FieldValue]:
        """Copy of the current values, safe to hand to pure functions."""
        return {
            field_id: list(value) if isinstance(value, list) else value
            for field_id, value in self._values.items()
        }

    def _normalize(self, field: FormField, value: object) -> FieldValue:
        if field.type is FieldType.CHECKBOX_GROUP:
            if value is None:
                return []
            if isinstance(value, str):
                return [
                    part
                    for part in split_multi_value(value, self._delimiter, self._escape)
                    if part != ""
                ]
            if isinstance(value, Iterable):
                return [str(item) for item in value]
            return [str(value)]

        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, tuple, set)):
            raise TypeError(f"Field '{field.id}' takes a single value, got {type(value).__name__}")
        return str(value)
