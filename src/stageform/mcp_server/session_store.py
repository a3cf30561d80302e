# Global session store for MCP connections

from stageform.session import FormSession

# Key: session_id, Value: active FormSession
active_sessions: dict[str, FormSession] = {}


def get_session(session_id: str) -> FormSession | None:
    """Get an active form session by id."""
    return active_sessions.get(session_id)


def add_session(session: FormSession) -> None:
    """Store a form session under its own id."""
    active_sessions[session.session_id] = session


def remove_session(session_id: str) -> FormSession | None:
    """Forget a session, returning it if it existed."""
    return active_sessions.pop(session_id, None)
