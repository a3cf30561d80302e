"""
Form definition loading.

Turns a raw form document, as served by the form host, into a normalized
:class:`FormDefinition`, and checks it once so that malformed definitions
are refused before any session starts.

Accepted document shapes:

    # Stages referencing fields by id (application forms)
    {"id": ..., "title": ..., "fields": [{...}, ...],
     "stages": [{"id": ..., "title": ..., "fields": ["field_id", ...]}]}

    # Sections with nested fields (public intake forms)
    {"id": ..., "title": ..., "sections": [{"id": ..., "fields": [{...}]}]}

    # A flat field list, treated as one implicit stage
    {"id": ..., "title": ..., "fields": [{...}, ...]}

Keys may be camelCase or snake_case. Conditions without an ``action``
mean "show only while every condition holds" and are rewritten as hide
rules with the negated operator.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from stageform.errors import DefinitionError
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

logger = logging.getLogger("stageform.loader")

TYPE_ALIASES: dict[str, FieldType] = {
    "TEXT": FieldType.TEXT,
    "SHORT_TEXT": FieldType.TEXT,
    "TEXTAREA": FieldType.TEXTAREA,
    "LONG_TEXT": FieldType.TEXTAREA,
    "EMAIL": FieldType.EMAIL,
    "PHONE": FieldType.PHONE,
    "NUMBER": FieldType.NUMBER,
    "SELECT": FieldType.SELECT,
    "DROPDOWN": FieldType.SELECT,
    "RADIO": FieldType.RADIO,
    "MULTIPLE_CHOICE": FieldType.RADIO,
    "CHECKBOX_GROUP": FieldType.CHECKBOX_GROUP,
    "CHECKBOXES": FieldType.CHECKBOX_GROUP,
    "CHECKBOX": FieldType.CHECKBOX_GROUP,
    "DATE": FieldType.DATE,
    "FILE": FieldType.FILE,
    "FILE_UPLOAD": FieldType.FILE,
    "URL": FieldType.URL,
    "PASSWORD": FieldType.PASSWORD,
    "STATIC_TEXT": FieldType.STATIC_TEXT,
    "PARAGRAPH": FieldType.STATIC_TEXT,
}

IMPLICIT_STAGE_ID = "default"


def _get(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, so camelCase and snake_case both work."""
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _order_key(raw: Any, index: int) -> tuple[float, int]:
    order = _get(raw, "order") if isinstance(raw, Mapping) else None
    if isinstance(order, bool) or not isinstance(order, (int, float)):
        return (index, index)
    return (order, index)


def _sorted_by_order(items: list[Any]) -> list[Any]:
    """Sort by explicit ``order``; ties and missing orders fall back to declaration order."""
    keyed = [(_order_key(item, index), item) for index, item in enumerate(items)]
    keyed.sort(key=lambda pair: pair[0])
    return [item for _, item in keyed]


def normalize_type(raw_type: Any) -> FieldType | None:
    if not isinstance(raw_type, str):
        return None
    return TYPE_ALIASES.get(raw_type.strip().upper().replace("-", "_"))


def _normalize_condition(
    raw: Any,
    field_id: str,
    issues: list[str],
) -> Condition | None:
    if not isinstance(raw, Mapping):
        issues.append(f"Field '{field_id}': condition must be an object")
        return None

    target = _get(raw, "targetFieldId", "target_field_id", "fieldId", "field_id", "dependsOn", "depends_on")
    raw_operator = _get(raw, "operator")
    raw_action = _get(raw, "action")
    raw_value = _get(raw, "value", default="")

    if not target:
        issues.append(f"Field '{field_id}': condition has no target field")
        return None

    try:
        operator = ConditionOperator(raw_operator)
    except ValueError:
        issues.append(f"Field '{field_id}': unknown condition operator '{raw_operator}'")
        return None

    if raw_action is None:
        # "Show only while this holds" == "hide when the negation holds".
        operator = operator.negated()
        action = ConditionAction.HIDE
    else:
        try:
            action = ConditionAction(raw_action)
        except ValueError:
            issues.append(f"Field '{field_id}': unknown condition action '{raw_action}'")
            return None

    return Condition(
        target_field_id=str(target),
        operator=operator,
        value=str(raw_value),
        action=action,
    )


def _normalize_validation(raw: Any, field_id: str, issues: list[str]) -> FieldValidation | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        issues.append(f"Field '{field_id}': validation must be an object")
        return None
    try:
        return FieldValidation(
            min=_get(raw, "min"),
            max=_get(raw, "max"),
            pattern=_get(raw, "pattern") or None,
            message=_get(raw, "message") or None,
            allowed_file_types=_get(raw, "allowedFileTypes", "allowed_file_types"),
            max_file_size=_get(raw, "maxFileSize", "max_file_size"),
        )
    except ValidationError as e:
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"])
            issues.append(f"Field '{field_id}': validation.{location}: {err['msg']}")
        return None


def _normalize_field(raw: Any, index: int, issues: list[str]) -> FormField | None:
    if not isinstance(raw, Mapping):
        issues.append(f"Field #{index}: must be an object")
        return None

    field_id = _get(raw, "id", "name")
    if not field_id:
        issues.append(f"Field #{index}: missing id")
        return None
    field_id = str(field_id)
    name = str(_get(raw, "name", default=field_id))
    label = str(_get(raw, "label", "title", default=name))

    raw_type = _get(raw, "type")
    field_type = normalize_type(raw_type)
    if field_type is None:
        issues.append(f"Field '{field_id}': unknown field type '{raw_type}'")
        return None

    raw_conditions = list(_get(raw, "conditions", default=[]) or [])
    conditional = _get(raw, "conditional")
    if conditional:
        raw_conditions.append(conditional)

    conditions = []
    for raw_condition in raw_conditions:
        condition = _normalize_condition(raw_condition, field_id, issues)
        if condition is not None:
            conditions.append(condition)

    options = _get(raw, "options")
    if options is not None:
        if not isinstance(options, list):
            issues.append(f"Field '{field_id}': options must be a list")
            options = None
        else:
            options = [str(option) for option in options]

    try:
        return FormField(
            id=field_id,
            name=name,
            label=label,
            type=field_type,
            description=_get(raw, "description"),
            placeholder=_get(raw, "placeholder"),
            options=options,
            validation=_normalize_validation(_get(raw, "validation"), field_id, issues),
            base_required=bool(_get(raw, "baseRequired", "base_required", "required", default=False)),
            conditions=conditions,
        )
    except ValidationError as e:
        issues.append(f"Field '{field_id}': {e.errors()[0]['msg']}")
        return None


def _normalize_fields(raw_fields: Any, where: str, issues: list[str]) -> list[FormField]:
    if not isinstance(raw_fields, list):
        issues.append(f"{where}: fields must be a list")
        return []
    fields = []
    for index, raw in enumerate(_sorted_by_order(raw_fields)):
        field = _normalize_field(raw, index, issues)
        if field is not None:
            fields.append(field)
    return fields


def _stage_from(raw: Mapping[str, Any], index: int, fields: list[FormField]) -> Stage:
    return Stage(
        id=str(_get(raw, "id", default=f"stage-{index + 1}")),
        title=str(_get(raw, "title", default=f"Stage {index + 1}")),
        description=_get(raw, "description"),
        fields=fields,
    )


def _stages_from_sections(raw_sections: Any, issues: list[str]) -> list[Stage]:
    if not isinstance(raw_sections, list):
        issues.append("sections must be a list")
        return []
    stages = []
    for index, raw in enumerate(_sorted_by_order(raw_sections)):
        if not isinstance(raw, Mapping):
            issues.append(f"Section #{index}: must be an object")
            continue
        where = f"Section '{_get(raw, 'id', default=index)}'"
        fields = _normalize_fields(_get(raw, "fields", default=[]), where, issues)
        stages.append(_stage_from(raw, index, fields))
    return stages


def _stages_from_references(raw_stages: Any, fields: list[FormField], issues: list[str]) -> list[Stage]:
    if not isinstance(raw_stages, list):
        issues.append("stages must be a list")
        return []

    by_id: dict[str, FormField] = {}
    for field in fields:
        if field.id in by_id:
            issues.append(f"Duplicate field id '{field.id}'")
        by_id[field.id] = field
    owner: dict[str, str] = {}
    stages = []

    for index, raw in enumerate(_sorted_by_order(raw_stages)):
        if not isinstance(raw, Mapping):
            issues.append(f"Stage #{index}: must be an object")
            continue
        stage_id = str(_get(raw, "id", default=f"stage-{index + 1}"))
        refs = _get(raw, "fields", "fieldIds", "field_ids", default=[])
        if not isinstance(refs, list):
            issues.append(f"Stage '{stage_id}': fields must be a list")
            continue

        stage_fields = []
        for ref in refs:
            ref_id = str(_get(ref, "id", default="")) if isinstance(ref, Mapping) else str(ref)
            field = by_id.get(ref_id)
            if field is None:
                issues.append(f"Stage '{stage_id}': references unknown field '{ref_id}'")
                continue
            if ref_id in owner:
                issues.append(
                    f"Field '{ref_id}' belongs to both stage '{owner[ref_id]}' and stage '{stage_id}'"
                )
                continue
            owner[ref_id] = stage_id
            stage_fields.append(field)

        # Field order within a stage follows the fields' declared order.
        position = {field.id: i for i, field in enumerate(fields)}
        stage_fields.sort(key=lambda f: position[f.id])
        stages.append(_stage_from(raw, index, stage_fields))

    for field in fields:
        if field.id not in owner:
            issues.append(f"Field '{field.id}' is not assigned to any stage")

    return stages


def check_definition(definition: FormDefinition) -> list[str]:
    """
    Find definition errors in a normalized form.

    Returns:
        Human-readable issues; an empty list means the definition is usable.
    """
    issues: list[str] = []

    if not definition.stages:
        issues.append("Form has no stages")

    seen_stages: set[str] = set()
    for stage in definition.stages:
        if stage.id in seen_stages:
            issues.append(f"Duplicate stage id '{stage.id}'")
        seen_stages.add(stage.id)

    field_ids: set[str] = set()
    for field in definition.iter_fields():
        if field.id in field_ids:
            issues.append(f"Duplicate field id '{field.id}'")
        field_ids.add(field.id)

    if not field_ids:
        issues.append("Form has no fields")

    for field in definition.iter_fields():
        for condition in field.conditions:
            if condition.target_field_id not in field_ids:
                issues.append(
                    f"Field '{field.id}': condition references unknown field "
                    f"'{condition.target_field_id}'"
                )

        if field.type.is_choice and not field.options:
            issues.append(f"Field '{field.id}': {field.type.value} field needs options")

        rules = field.validation
        if rules is None:
            continue
        if rules.pattern:
            try:
                re.compile(rules.pattern)
            except re.error as e:
                issues.append(f"Field '{field.id}': invalid pattern '{rules.pattern}': {e}")
        if rules.min is not None and rules.max is not None and rules.min > rules.max:
            issues.append(f"Field '{field.id}': validation.min is greater than validation.max")

    return issues


def load_definition(document: Mapping[str, Any]) -> FormDefinition:
    """
    Normalize and check a raw form document.

    Args:
        document: Form document as fetched from the form host.

    Returns:
        The normalized FormDefinition.

    Raises:
        DefinitionError: With every problem found, if the document is unusable.
    """
    if not isinstance(document, Mapping):
        raise DefinitionError(["Form definition must be an object"])

    form_id = str(_get(document, "id", "formId", "form_id", default=""))
    title = str(_get(document, "title", default="Application Form"))
    description = _get(document, "description")
    issues: list[str] = []

    if not form_id:
        issues.append("Form definition has no id")

    if _get(document, "sections") is not None:
        stages = _stages_from_sections(_get(document, "sections"), issues)
    else:
        fields = _normalize_fields(_get(document, "fields", default=[]), "Form", issues)
        if _get(document, "stages") is not None:
            stages = _stages_from_references(_get(document, "stages"), fields, issues)
        else:
            stages = [
                Stage(id=IMPLICIT_STAGE_ID, title=title, description=description, fields=fields)
            ]

    settings = _get(document, "settings", default={})
    if not isinstance(settings, Mapping):
        settings = {}

    if not issues:
        definition = FormDefinition(
            id=form_id,
            title=title,
            description=description,
            stages=stages,
            submit_button_text=str(_get(settings, "submitButtonText", "submit_button_text", default="Submit")),
        )
        issues.extend(check_definition(definition))

    if issues:
        logger.warning(f"Rejected form definition '{form_id}' with {len(issues)} issue(s)")
        raise DefinitionError(issues, form_id=form_id or None)

    logger.info(
        f"Loaded form '{definition.id}': {definition.total_stages} stage(s), "
        f"{len(definition.field_ids())} field(s)"
    )
    return definition


def load_definition_json(text: str) -> FormDefinition:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DefinitionError([f"Invalid JSON: {e}"])
    return load_definition(document)


def load_definition_file(file_path: str | Path) -> FormDefinition:
    """Load a form definition from a JSON file."""
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        raise DefinitionError([f"Definition file not found: {file_path}"])
    return load_definition_json(text)
