"""Tests for FormSession."""

import asyncio

import pytest

from stageform.errors import (
    SessionStateError,
    SubmissionInProgressError,
    TransportError,
    UnknownFieldError,
    UploadRejectedError,
)
from stageform.loader import load_definition
from stageform.models.submission import SubmissionOutcome
from stageform.session import FormSession, SessionStatus, open_form
from stageform.transport import FormTransport


class FakeTransport(FormTransport):
    """In-memory form host."""

    def __init__(self, documents=None, outcome=None, error=None):
        self.documents = documents or {}
        self.outcome = outcome or SubmissionOutcome(success=True, message="ok", submission_id="sub-1")
        self.error = error
        self.submissions = []
        self.uploads = []

    async def fetch_definition(self, form_id):
        if form_id not in self.documents:
            raise TransportError(f"Form not found: {form_id}")
        return self.documents[form_id]

    async def submit(self, submission):
        self.submissions.append(submission)
        if self.error is not None:
            raise self.error
        return self.outcome

    async def upload(self, form_id, filename, content, content_type="application/octet-stream"):
        self.uploads.append((form_id, filename, content))
        return f"uploads/{filename}"


class BlockingTransport(FakeTransport):
    """Holds every submit until released."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def submit(self, submission):
        self.started.set()
        await self.release.wait()
        return await super().submit(submission)


@pytest.fixture
def upload_form():
    return load_definition({
        "id": "cv-upload",
        "title": "CV",
        "fields": [
            {
                "id": "cv",
                "label": "CV",
                "type": "FILE_UPLOAD",
                "required": True,
                "validation": {"allowedFileTypes": ["pdf", ".docx"], "maxFileSize": 1024 * 1024},
            },
            {"id": "name", "label": "Name", "type": "text"},
        ],
    })


class TestConditionalRequirement:
    """Agency emails make the referral code required."""

    @pytest.mark.asyncio
    async def test_referral_code_required_for_agency_email(self, agency_form):
        session = FormSession(agency_form, transport=FakeTransport())

        states = session.set_value("email", "pilot@agency.rw")
        assert states["referral_code"].visible
        assert states["referral_code"].required

        step = await session.next()
        assert not step.accepted
        assert session.current_stage_index == 0
        assert [e.message for e in step.errors] == ["Referral Code is required"]
        assert session.errors["referral_code"].error_type == "required"

        session.set_value("referral_code", "AG-7")
        assert "referral_code" not in session.errors
        step = await session.next()
        assert step.accepted
        assert session.current_stage_index == 1

    @pytest.mark.asyncio
    async def test_blank_referral_code_blocks_next(self, agency_form):
        session = FormSession(agency_form, transport=FakeTransport())
        session.set_values({"email": "pilot@agency.rw", "referral_code": "   "})

        step = await session.next()
        assert not step.accepted
        assert step.stage_index == 0
        assert [e.message for e in step.errors] == ["Referral Code is required"]

    @pytest.mark.asyncio
    async def test_requirement_lifts_when_email_changes(self, agency_form):
        session = FormSession(agency_form, transport=FakeTransport())
        session.set_value("email", "pilot@agency.rw")
        session.set_value("email", "pilot@gmail.com")
        assert not session.field_state("referral_code").required
        assert (await session.next()).accepted


class TestHiddenFieldExclusion:
    """A hidden field's value stays in the store but is never submitted."""

    @pytest.mark.asyncio
    async def test_hidden_value_retained_but_not_submitted(self, license_form):
        transport = FakeTransport()
        session = FormSession(license_form, transport=transport)

        session.set_values({"has_license": "Yes", "license_number": "RW-123"})
        session.set_value("has_license", "No")
        assert not session.field_state("license_number").visible
        assert session.value("license_number") == "RW-123"
        assert [f.id for f in session.visible_fields()] == ["has_license"]

        session.set_value("has_license", "Yes")
        assert session.field_state("license_number").visible
        assert session.value("license_number") == "RW-123"

        session.set_value("has_license", "No")
        result = await session.submit()
        assert result.submitted
        assert transport.submissions[0].as_dict() == {"has_license": "No"}

    @pytest.mark.asyncio
    async def test_single_stage_next_submits(self, license_form):
        transport = FakeTransport()
        session = FormSession(license_form, transport=transport)
        session.set_values({"has_license": "Yes", "license_number": "RW-9"})

        step = await session.next()
        assert step.accepted
        assert step.ready_to_submit
        assert step.submit_result.submitted
        assert step.submit_result.outcome.submission_id == "sub-1"
        assert transport.submissions[0].as_dict() == {
            "has_license": "Yes",
            "license_number": "RW-9",
        }


class TestNavigation:
    """Tests for stage navigation through the session."""

    @pytest.mark.asyncio
    async def test_previous_keeps_values(self, agency_form):
        session = FormSession(agency_form)
        session.set_value("email", "pilot@gmail.com")
        await session.next()
        session.set_value("motivation", "I like forms")

        step = session.previous()
        assert step.accepted
        assert session.current_stage_index == 0
        assert session.value("motivation") == "I like forms"
        assert session.value("email") == "pilot@gmail.com"

    def test_previous_on_first_stage(self, agency_form):
        session = FormSession(agency_form)
        assert not session.previous().accepted

    def test_progress(self, agency_form):
        session = FormSession(agency_form)
        assert session.progress == 50

    def test_can_advance_tracks_values(self, agency_form):
        session = FormSession(agency_form)
        assert not session.can_advance
        session.set_value("email", "pilot@gmail.com")
        assert session.can_advance

    def test_unknown_field(self, agency_form):
        session = FormSession(agency_form)
        with pytest.raises(UnknownFieldError):
            session.set_value("ghost", "x")
        with pytest.raises(UnknownFieldError):
            session.field_state("ghost")


class TestSubmit:
    """Tests for submitting through the transport."""

    async def _on_final_stage(self, agency_form, transport):
        session = FormSession(agency_form, transport=transport)
        session.set_value("email", "pilot@gmail.com")
        await session.next()
        session.set_values({"motivation": "Because", "interests": ["A", "C"]})
        return session

    @pytest.mark.asyncio
    async def test_submit_from_first_stage_rejected(self, agency_form):
        session = FormSession(agency_form, transport=FakeTransport())
        with pytest.raises(SessionStateError):
            await session.submit()

    @pytest.mark.asyncio
    async def test_submit_blocked_by_errors(self, agency_form):
        transport = FakeTransport()
        session = await self._on_final_stage(agency_form, transport)
        session.set_value("motivation", "")
        result = await session.submit()
        assert not result.submitted
        assert [e.field_id for e in result.errors] == ["motivation"]
        assert transport.submissions == []

    @pytest.mark.asyncio
    async def test_successful_submit_resets_and_ends(self, agency_form):
        transport = FakeTransport()
        session = await self._on_final_stage(agency_form, transport)

        result = await session.submit()
        assert result.submitted
        assert result.submission.as_dict() == {
            "email": "pilot@gmail.com",
            "referral_code": "",
            "motivation": "Because",
            "interests": "A,C",
        }
        assert session.status is SessionStatus.SUBMITTED
        assert session.value("email") is None
        assert session.value("interests") == []
        with pytest.raises(SessionStateError):
            session.set_value("email", "again@gmail.com")
        with pytest.raises(SessionStateError):
            await session.submit()

    @pytest.mark.asyncio
    async def test_rejected_submission_can_be_retried(self, agency_form):
        transport = FakeTransport(outcome=SubmissionOutcome(success=False, message="Server busy"))
        session = await self._on_final_stage(agency_form, transport)

        result = await session.submit()
        assert not result.submitted
        assert result.transport_failed
        assert result.outcome.message == "Server busy"
        assert session.status is SessionStatus.EDITING
        assert session.value("motivation") == "Because"
        assert session.current_stage_index == 1

        transport.outcome = SubmissionOutcome(success=True)
        assert (await session.submit()).submitted
        assert len(transport.submissions) == 2

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failed_outcome(self, agency_form):
        transport = FakeTransport(error=TransportError("Could not reach form server"))
        session = await self._on_final_stage(agency_form, transport)

        result = await session.submit()
        assert result.transport_failed
        assert result.outcome.message == "Could not reach form server"
        assert session.status is SessionStatus.EDITING

    @pytest.mark.asyncio
    async def test_no_transport(self, agency_form):
        session = await self._on_final_stage(agency_form, None)
        with pytest.raises(SessionStateError):
            await session.submit()

    @pytest.mark.asyncio
    async def test_second_submit_while_in_flight(self, agency_form):
        transport = BlockingTransport()
        session = await self._on_final_stage(agency_form, transport)

        first = asyncio.create_task(session.submit())
        await transport.started.wait()
        assert session.is_submitting
        with pytest.raises(SubmissionInProgressError):
            await session.submit()
        with pytest.raises(SessionStateError):
            session.set_value("motivation", "changed")

        transport.release.set()
        result = await first
        assert result.submitted
        assert len(transport.submissions) == 1

    @pytest.mark.asyncio
    async def test_escaped_multi_values(self, agency_form):
        transport = FakeTransport()
        session = FormSession(agency_form, transport=transport, escape_multi_values=True, delimiter="|")
        session.set_value("email", "pilot@gmail.com")
        await session.next()
        session.set_values({"motivation": "x", "interests": "A|B"})
        assert session.value("interests") == ["A", "B"]
        result = await session.submit()
        assert result.submission.as_dict()["interests"] == "A|B"


class TestAbandon:
    """Tests for abandoning a session."""

    def test_abandon_discards_values(self, agency_form):
        session = FormSession(agency_form)
        session.set_value("email", "pilot@gmail.com")
        session.abandon()
        assert session.status is SessionStatus.ABANDONED
        assert session.value("email") is None
        with pytest.raises(SessionStateError):
            session.set_value("email", "x@y.zz")


class TestUploads:
    """Tests for the file upload boundary."""

    def test_accept_upload(self, upload_form):
        session = FormSession(upload_form)
        reference = session.accept_upload("cv", "resume.PDF", 2048)
        assert reference == "resume.PDF"
        assert session.value("cv") == "resume.PDF"

    def test_wrong_extension(self, upload_form):
        session = FormSession(upload_form)
        with pytest.raises(UploadRejectedError) as exc_info:
            session.accept_upload("cv", "resume.exe", 10)
        assert exc_info.value.reason == "Invalid file type. Allowed: pdf, docx"
        assert session.value("cv") is None

    def test_too_large(self, upload_form):
        session = FormSession(upload_form)
        with pytest.raises(UploadRejectedError) as exc_info:
            session.accept_upload("cv", "resume.pdf", 2 * 1024 * 1024)
        assert str(exc_info.value) == "File size must be less than 1MB"

    def test_only_file_fields_accept_uploads(self, upload_form):
        session = FormSession(upload_form)
        with pytest.raises(UploadRejectedError):
            session.accept_upload("name", "a.pdf", 1)

    def test_session_size_cap_applies_without_field_limit(self):
        definition = load_definition({
            "id": "f",
            "title": "F",
            "fields": [{"id": "photo", "label": "Photo", "type": "file"}],
        })
        session = FormSession(definition, max_upload_bytes=100)
        session.accept_upload("photo", "me.png", 100)
        with pytest.raises(UploadRejectedError):
            session.accept_upload("photo", "me.png", 101)

    @pytest.mark.asyncio
    async def test_upload_file_stores_reference(self, upload_form):
        transport = FakeTransport()
        session = FormSession(upload_form, transport=transport)
        reference = await session.upload_file("cv", "resume.pdf", b"%PDF-1.4")
        assert reference == "uploads/resume.pdf"
        assert session.value("cv") == "uploads/resume.pdf"
        assert transport.uploads == [("cv-upload", "resume.pdf", b"%PDF-1.4")]

        result = await session.submit()
        assert result.submission.as_dict() == {"cv": "uploads/resume.pdf", "name": ""}


class TestView:
    """Tests for the presentation snapshot."""

    def test_view_of_first_stage(self, agency_form):
        session = FormSession(agency_form, session_id="s1")
        session.set_value("email", "pilot@agency.rw")
        view = session.view()

        assert view["sessionId"] == "s1"
        assert view["formId"] == "agency-application"
        assert view["status"] == "editing"
        assert view["stage"]["index"] == 0
        assert view["stage"]["total"] == 2
        assert view["progress"] == 50
        assert not view["canAdvance"]
        assert [f["id"] for f in view["fields"]] == ["email", "referral_code"]
        referral = view["fields"][1]
        assert referral["required"] is True
        assert referral["value"] is None

    @pytest.mark.asyncio
    async def test_view_shows_errors_and_hides_fields(self, license_form):
        session = FormSession(license_form)
        session.set_value("has_license", "Yes")
        await session.next()
        view = session.view()
        assert view["fields"][1]["error"] == "License Number is required"

        session.set_value("has_license", "No")
        assert [f["id"] for f in session.view()["fields"]] == ["has_license"]


class TestOpen:
    """Tests for starting a session from the form host."""

    @pytest.mark.asyncio
    async def test_open_form(self, agency_document):
        transport = FakeTransport(documents={"agency-application": agency_document})
        session = await open_form("agency-application", transport=transport)
        assert session.transport is transport
        assert session.current_stage.id == "contact"

    @pytest.mark.asyncio
    async def test_open_unknown_form(self):
        with pytest.raises(TransportError):
            await FormSession.open("missing", FakeTransport())
