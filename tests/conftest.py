"""Shared fixtures for stageform tests."""

import pytest

from stageform.loader import load_definition


@pytest.fixture
def agency_document():
    """Two-stage application form whose referral code becomes required for agency emails."""
    return {
        "id": "agency-application",
        "title": "Agency Application",
        "fields": [
            {"id": "email", "label": "Email", "type": "email", "baseRequired": True},
            {
                "id": "referral_code",
                "label": "Referral Code",
                "type": "text",
                "baseRequired": False,
                "conditions": [
                    {
                        "targetFieldId": "email",
                        "operator": "contains",
                        "value": "@agency.rw",
                        "action": "require",
                    }
                ],
            },
            {"id": "motivation", "label": "Motivation", "type": "textarea", "baseRequired": True},
            {
                "id": "interests",
                "label": "Interests",
                "type": "checkbox-group",
                "options": ["A", "B", "C"],
            },
        ],
        "stages": [
            {"id": "contact", "title": "Contact", "fields": ["email", "referral_code"]},
            {"id": "about", "title": "About You", "fields": ["motivation", "interests"]},
        ],
    }


@pytest.fixture
def agency_form(agency_document):
    return load_definition(agency_document)


@pytest.fixture
def license_document():
    """Single-stage form where the licence number is hidden when the applicant has none."""
    return {
        "id": "driver-intake",
        "title": "Driver Intake",
        "fields": [
            {
                "id": "has_license",
                "label": "Do you have a license?",
                "type": "radio",
                "options": ["Yes", "No"],
                "required": True,
            },
            {
                "id": "license_number",
                "label": "License Number",
                "type": "text",
                "required": True,
                "conditions": [
                    {
                        "targetFieldId": "has_license",
                        "operator": "equals",
                        "value": "No",
                        "action": "hide",
                    }
                ],
            },
        ],
    }


@pytest.fixture
def license_form(license_document):
    return load_definition(license_document)
