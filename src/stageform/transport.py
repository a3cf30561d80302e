"""
Request/response boundary to the form host.

The engine only needs three calls: fetch a definition, post a submission,
and upload a file. :class:`FormTransport` names them; :class:`HttpFormTransport`
implements them over HTTP with httpx.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from stageform.config import get_config
from stageform.errors import TransportError
from stageform.models.submission import Submission, SubmissionOutcome

logger = logging.getLogger("stageform.transport")


class FormTransport(ABC):
    """Abstract boundary the session talks to."""

    @abstractmethod
    async def fetch_definition(self, form_id: str) -> dict[str, Any]:
        """Return the raw form document for ``form_id``."""

    @abstractmethod
    async def submit(self, submission: Submission) -> SubmissionOutcome:
        """Deliver a submission and report whether the host accepted it."""

    async def upload(
        self,
        form_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Store file bytes and return an opaque reference."""
        raise TransportError(f"{type(self).__name__} does not support uploads")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Form server returned HTTP {response.status_code}"


class HttpFormTransport(FormTransport):
    """
    HTTP client for the form host.

    Endpoints:
        GET  {base_url}/api/forms/{form_id}
        POST {base_url}/api/forms/{form_id}/submit
        POST {base_url}/api/upload
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.form_server_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                return await self._client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {type(e).__name__}: {e}")
            raise TransportError(f"Could not reach form server: {e}") from e

    async def fetch_definition(self, form_id: str) -> dict[str, Any]:
        response = await self._request("GET", f"/api/forms/{form_id}")
        if response.status_code != 200:
            raise TransportError(_error_message(response))
        try:
            document = response.json()
        except ValueError as e:
            raise TransportError(f"Form server returned invalid JSON for form '{form_id}'") from e
        if not isinstance(document, dict):
            raise TransportError(f"Form server returned a non-object for form '{form_id}'")
        return document

    async def submit(self, submission: Submission) -> SubmissionOutcome:
        logger.info(
            f"POST submission for form '{submission.form_id}' "
            f"({len(submission.field_submissions)} field(s))"
        )
        response = await self._request(
            "POST",
            f"/api/forms/{submission.form_id}/submit",
            json=submission.to_payload(),
        )
        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"Submission for form '{submission.form_id}' rejected: {message}")
            return SubmissionOutcome(success=False, message=message)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        submission_id = body.get("submissionId")
        return SubmissionOutcome(
            success=bool(body.get("success", True)),
            message=str(body.get("message", "Form submitted successfully")),
            submission_id=str(submission_id) if submission_id is not None else None,
        )

    async def upload(
        self,
        form_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload file bytes and return the storage reference the host assigns.

        Raises:
            TransportError: If the upload fails.
        """
        response = await self._request(
            "POST",
            "/api/upload",
            files={"file": (filename, content, content_type)},
            data={"type": "general", "entityId": form_id, "subfolder": "files"},
        )
        if not response.is_success:
            raise TransportError(_error_message(response))
        try:
            body = response.json()
        except ValueError as e:
            raise TransportError("Upload response was not JSON") from e
        reference = None
        if isinstance(body, dict):
            reference = body.get("fileUrl") or body.get("fileName")
        if not reference:
            raise TransportError("Upload response did not include a file reference")
        return str(reference)
