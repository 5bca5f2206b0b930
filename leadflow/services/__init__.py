"""Service layer exports."""

from .auth_flow import AuthorizationFlowController
from .session_cookie import SessionCookieCodec
from .session_store import (
    InMemorySessionStore,
    SessionState,
    SessionStore,
    SQLiteSessionStore,
)

__all__ = [
    "AuthorizationFlowController",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "SessionCookieCodec",
    "SessionState",
    "SessionStore",
]
