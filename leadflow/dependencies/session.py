"""Session identifier dependency."""

from fastapi import Request

from leadflow.core.session import SESSION_ID_ATTR, SESSION_USED_ATTR


def get_session_id(request: Request) -> str:
    """Return the current session id and mark the session as in use."""
    setattr(request.state, SESSION_USED_ATTR, True)
    return getattr(request.state, SESSION_ID_ATTR)


__all__ = ["get_session_id"]
