"""
MCP Tool definitions for stageform.

Each tool drives one operation of a form-filling session and returns the
session's view so the calling agent can show the user what to fill next.
"""

import logging
from typing import Any

from stageform.errors import FormEngineError
from stageform.loader import load_definition
from stageform.mcp_server.session_store import add_session, get_session, remove_session
from stageform.session import FormSession
from stageform.transport import FormTransport, HttpFormTransport

logger = logging.getLogger("stageform-mcp")


def _require_session(session_id: str) -> FormSession:
    session = get_session(session_id)
    if session is None:
        raise ValueError(f"Unknown session: {session_id}")
    return session


async def mcp_open_form(
    form_id: str | None = None,
    definition: dict[str, Any] | None = None,
    transport: FormTransport | None = None,
) -> dict[str, Any]:
    """
    Start a form-filling session.

    Args:
        form_id: Id of a form to fetch from the form host.
        definition: Inline form definition document, used instead of fetching.
        transport: Boundary for fetching and submitting. Defaults to HTTP.

    Returns:
        The new session's view.

    Raises:
        ValueError: If neither form_id nor definition is given.
        DefinitionError: If the definition is malformed.
        TransportError: If the form cannot be fetched.
    """
    transport = transport or HttpFormTransport()
    if definition is not None:
        session = FormSession(load_definition(definition), transport=transport)
    elif form_id:
        session = await FormSession.open(form_id, transport)
    else:
        raise ValueError("Either form_id or definition is required")

    add_session(session)
    logger.info(f"Opened session {session.session_id} on form '{session.definition.id}'")
    return session.view()


async def mcp_set_field_value(session_id: str, field_id: str, value: Any) -> dict[str, Any]:
    session = _require_session(session_id)
    session.set_value(field_id, value)
    return session.view()


async def mcp_next_stage(session_id: str) -> dict[str, Any]:
    """Advance, or submit from the final stage."""
    session = _require_session(session_id)
    step = await session.next()
    result = {"accepted": step.accepted, "view": session.view()}
    if step.errors:
        result["errors"] = {e.field_id: e.message for e in step.errors}
    if step.submit_result is not None:
        result.update(_submit_payload(step.submit_result))
        if step.submit_result.submitted:
            remove_session(session_id)
    return result


async def mcp_previous_stage(session_id: str) -> dict[str, Any]:
    session = _require_session(session_id)
    step = session.previous()
    return {"accepted": step.accepted, "view": session.view()}


async def mcp_submit_form(session_id: str) -> dict[str, Any]:
    session = _require_session(session_id)
    submit_result = await session.submit()
    result = _submit_payload(submit_result)
    result["view"] = session.view()
    if submit_result.submitted:
        remove_session(session_id)
    return result


async def mcp_get_form_state(session_id: str) -> dict[str, Any]:
    return _require_session(session_id).view()


async def mcp_abandon_form(session_id: str) -> dict[str, Any]:
    """Discard the answers and forget the session."""
    session = _require_session(session_id)
    session.abandon()
    remove_session(session_id)
    logger.info(f"Abandoned session {session_id}")
    return {"abandoned": True, "sessionId": session_id}


def _submit_payload(submit_result) -> dict[str, Any]:
    payload: dict[str, Any] = {"submitted": submit_result.submitted}
    if submit_result.errors:
        payload["errors"] = {e.field_id: e.message for e in submit_result.errors}
    if submit_result.outcome is not None:
        payload["message"] = submit_result.outcome.message
        if submit_result.outcome.submission_id:
            payload["submissionId"] = submit_result.outcome.submission_id
    if submit_result.transport_failed:
        payload["retry"] = True
    return payload


TOOL_HANDLERS = {
    "open_form": mcp_open_form,
    "set_field_value": mcp_set_field_value,
    "next_stage": mcp_next_stage,
    "previous_stage": mcp_previous_stage,
    "submit_form": mcp_submit_form,
    "get_form_state": mcp_get_form_state,
    "abandon_form": mcp_abandon_form,
}


async def call_mcp_tool(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Dispatch a tool call by name.

    Engine errors are returned as ``{"error": ...}`` so the agent can
    report them; unknown tools likewise.
    """
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        return {"error": f"Unknown tool: {name}"}
    try:
        return await handler(**arguments)
    except (FormEngineError, ValueError, TypeError) as e:
        logger.error(f"Error in {name}: {e}")
        result: dict[str, Any] = {"error": str(e)}
        issues = getattr(e, "issues", None)
        if issues:
            result["issues"] = issues
        return result


_SESSION_ID = {
    "type": "string",
    "description": "Session id returned by open_form",
}


def get_mcp_tools() -> list[dict]:
    """
    Get MCP tool definitions for registration with MCP server.

    Returns list of tool schemas compatible with MCP protocol.
    """
    return [
        {
            "name": "open_form",
            "description": """
Start filling a multi-stage form on behalf of the user.

HOW TO USE:
- Pass form_id to fetch the form from the form server, OR pass an inline definition
- The result lists the current stage's visible fields with their types, options and whether they are required
- Keep the returned sessionId for every other tool

AFTER CALLING:
Ask the user for the visible fields of the current stage, then call set_field_value for each answer.
Fields can appear, disappear or become required as answers change, so re-read the view after each call.
""".strip(),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "form_id": {
                        "type": "string",
                        "description": "Id of the form to fetch from the form server",
                    },
                    "definition": {
                        "type": "object",
                        "description": "Inline form definition (stages/sections/fields)",
                    },
                },
            },
        },
        {
            "name": "set_field_value",
            "description": "Record the user's answer for one field. checkbox-group fields take a list of options.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "session_id": _SESSION_ID,
                    "field_id": {"type": "string", "description": "Field id from the view"},
                    "value": {
                        "description": "Answer: a string, or a list of strings for checkbox-group fields",
                    },
                },
                "required": ["session_id", "field_id", "value"],
            },
        },
        {
            "name": "next_stage",
            "description": "Validate the current stage and move on. On the final stage this submits the form.",
            "inputSchema": {
                "type": "object",
                "properties": {"session_id": _SESSION_ID},
                "required": ["session_id"],
            },
        },
        {
            "name": "previous_stage",
            "description": "Go back one stage. Answers are kept.",
            "inputSchema": {
                "type": "object",
                "properties": {"session_id": _SESSION_ID},
                "required": ["session_id"],
            },
        },
        {
            "name": "submit_form",
            "description": "Submit the form from its final stage. If the server fails, retry later; answers are kept.",
            "inputSchema": {
                "type": "object",
                "properties": {"session_id": _SESSION_ID},
                "required": ["session_id"],
            },
        },
        {
            "name": "get_form_state",
            "description": "Get the current stage, progress and visible fields of a session.",
            "inputSchema": {
                "type": "object",
                "properties": {"session_id": _SESSION_ID},
                "required": ["session_id"],
            },
        },
        {
            "name": "abandon_form",
            "description": "Stop filling the form. Answers are discarded and the session id stops working.",
            "inputSchema": {
                "type": "object",
                "properties": {"session_id": _SESSION_ID},
                "required": ["session_id"],
            },
        },
    ]
