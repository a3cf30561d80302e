"""
Rule resolution.

Derives each field's resolved visibility and requiredness from its
ordered conditions. Conditions are applied in declaration order and the
last applicable one wins on each axis independently, so authors can write
"hidden by default, shown only when X" as a hide rule followed by a show
rule.

Resolution is pure and is re-run in full on every value change.
"""

from dataclasses import dataclass
from typing import Mapping

from stageform.conditions import FieldValue, evaluate
from stageform.models.definition import ConditionAction, FormDefinition, FormField


@dataclass(frozen=True)
class FieldState:
    """Resolved state of one field for a given value snapshot."""

    visible: bool
    required: bool

    @property
    def enforced_required(self) -> bool:
        """Requiredness that validation acts on; hidden fields are never enforced."""
        return self.visible and self.required


def resolve(field: FormField, values: Mapping[str, FieldValue]) -> FieldState:
    """Apply a field's conditions to the current values."""
    visible = True
    required = field.base_required

    for condition in field.conditions:
        if not evaluate(condition, values):
            continue
        action = condition.action
        if action is ConditionAction.SHOW:
            visible = True
        elif action is ConditionAction.HIDE:
            visible = False
        elif action is ConditionAction.REQUIRE:
            required = True
        elif action is ConditionAction.MAKE_OPTIONAL:
            required = False

    return FieldState(visible=visible, required=required)


def resolve_all(
    definition: FormDefinition,
    values: Mapping[str, FieldValue],
) -> dict[str, FieldState]:
    """Resolve every field of the form, keyed by field id, in declared order."""
    return {field.id: resolve(field, values) for field in definition.iter_fields()}
