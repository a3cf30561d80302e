"""Tests for field and stage validation."""

import pytest

from stageform.models.definition import FieldType, FieldValidation, FormField
from stageform.validation import (
    DATE_MESSAGE,
    EMAIL_MESSAGE,
    NUMBER_MESSAGE,
    PHONE_MESSAGE,
    URL_MESSAGE,
    parse_number,
    validate_field,
    validate_form,
    validate_stage,
)


def _field(field_type=FieldType.TEXT, label="Answer", **kwargs) -> FormField:
    return FormField(id="answer", name="answer", label=label, type=field_type, **kwargs)


class TestRequired:
    """Tests for the required check."""

    @pytest.mark.parametrize("value", [None, "", []])
    def test_required_empty_fails(self, value):
        error = validate_field(_field(label="Referral Code"), True, value)
        assert error is not None
        assert error.error_type == "required"
        assert error.message == "Referral Code is required"

    @pytest.mark.parametrize("value", ["   ", "\t\n"])
    def test_required_whitespace_only_fails(self, value):
        """Blank answers do not satisfy a required field."""
        error = validate_field(_field(label="Referral Code"), True, value)
        assert error.message == "Referral Code is required"

    def test_optional_whitespace_only_passes(self):
        assert validate_field(_field(FieldType.EMAIL), False, "  ") is None

    def test_optional_empty_passes(self):
        assert validate_field(_field(FieldType.EMAIL), False, "") is None

    def test_hidden_field_always_passes(self):
        """Hidden fields pass whatever their requiredness or value."""
        assert validate_field(_field(), True, None, visible=False) is None
        assert validate_field(_field(FieldType.EMAIL), True, "not-an-email", visible=False) is None

    def test_static_text_never_validated(self):
        assert validate_field(_field(FieldType.STATIC_TEXT), True, None) is None


class TestFormats:
    """Tests for per-type format checks on present values."""

    @pytest.mark.parametrize("value", ["a@b.co", "first.last@agency.rw"])
    def test_valid_email(self, value):
        assert validate_field(_field(FieldType.EMAIL), False, value) is None

    @pytest.mark.parametrize("value", ["plain", "a@b", "a b@c.de"])
    def test_invalid_email(self, value):
        error = validate_field(_field(FieldType.EMAIL), False, value)
        assert error.message == EMAIL_MESSAGE

    def test_url(self):
        assert validate_field(_field(FieldType.URL), False, "https://example.org/x") is None
        assert validate_field(_field(FieldType.URL), False, "ftp://example.org").message == URL_MESSAGE
        assert validate_field(_field(FieldType.URL), False, "example.org").message == URL_MESSAGE

    def test_number(self):
        assert validate_field(_field(FieldType.NUMBER), False, "-3.5") is None
        assert validate_field(_field(FieldType.NUMBER), False, "three").message == NUMBER_MESSAGE
        assert validate_field(_field(FieldType.NUMBER), False, "NaN").message == NUMBER_MESSAGE

    def test_phone(self):
        assert validate_field(_field(FieldType.PHONE), False, "+250 788-123-456") is None
        assert validate_field(_field(FieldType.PHONE), False, "0788123456").message == PHONE_MESSAGE

    def test_date(self):
        assert validate_field(_field(FieldType.DATE), False, "2025-02-28") is None
        assert validate_field(_field(FieldType.DATE), False, "2025-02-30").message == DATE_MESSAGE
        assert validate_field(_field(FieldType.DATE), False, "28/02/2025").message == DATE_MESSAGE

    def test_choice_must_be_declared_option(self):
        field = _field(FieldType.SELECT, label="Country", options=["Rwanda", "Kenya"])
        assert validate_field(field, False, "Kenya") is None
        error = validate_field(field, False, "Peru")
        assert error.message == "Country must be one of the available options"

    def test_checkbox_group_elements_checked(self):
        field = _field(FieldType.CHECKBOX_GROUP, options=["A", "B"])
        assert validate_field(field, True, ["A", "B"]) is None
        assert validate_field(field, True, ["A", "Z"]).error_type == "option"


class TestConstraints:
    """Tests for min/max/pattern constraints."""

    def test_numeric_range(self):
        field = _field(FieldType.NUMBER, label="Age", validation=FieldValidation(min=18, max=65))
        assert validate_field(field, True, "18") is None
        assert validate_field(field, True, "17").message == "Age must be at least 18"
        assert validate_field(field, True, "65.5").message == "Age must be at most 65"

    def test_pattern(self):
        field = _field(validation=FieldValidation(pattern=r"^[A-Z]{3}\d{3}$"))
        assert validate_field(field, True, "ABC123") is None
        assert validate_field(field, True, "abc123").error_type == "pattern"

    def test_custom_message(self):
        field = _field(validation=FieldValidation(pattern=r"^\d+$", message="Digits only"))
        assert validate_field(field, True, "12a").message == "Digits only"

    def test_parse_number(self):
        assert parse_number(" 42 ") == 42
        assert parse_number("1e3") == 1000
        assert parse_number("") is None
        assert parse_number("Infinity") is None


class TestStageValidation:
    """Tests for validating a stage and a whole form."""

    def test_conditional_requirement_blocks_stage(self, agency_form):
        """An agency email makes the referral code required."""
        stage = agency_form.stages[0]
        errors = validate_stage(stage, {"email": "pilot@agency.rw", "referral_code": ""})
        assert [e.message for e in errors] == ["Referral Code is required"]

        assert validate_stage(stage, {"email": "pilot@gmail.com"}) == []

    def test_hidden_required_field_passes(self, license_form):
        stage = license_form.stages[0]
        assert validate_stage(stage, {"has_license": "No"}) == []
        errors = validate_stage(stage, {"has_license": "Yes"})
        assert [e.field_id for e in errors] == ["license_number"]

    def test_validate_form(self, agency_form):
        result = validate_form(agency_form, {"email": "nope"})
        assert not result.is_valid
        assert set(result.to_error_dict()) == {"email", "motivation"}
