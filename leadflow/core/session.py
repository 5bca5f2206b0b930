"""
Cookie-based session middleware.

The browser only ever holds an encrypted session identifier; the state itself
lives in a ``SessionStore``. A cookie is issued the first time a request
writes session data and removed once the presented session no longer exists.
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from leadflow.core.config import SessionSettings
from leadflow.services.session_cookie import SessionCookieCodec
from leadflow.services.session_store import SessionStore

logger = logging.getLogger(__name__)

SESSION_ID_ATTR = "session_id"
SESSION_USED_ATTR = "session_used"


class SessionCookieMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        codec: SessionCookieCodec,
        store: SessionStore,
        settings: SessionSettings,
    ) -> None:
        super().__init__(app)
        self._codec = codec
        self._store = store
        self._settings = settings

    def _read_cookie(self, request: Request) -> str | None:
        raw = request.cookies.get(self._settings.cookie_name)
        if not raw:
            return None
        try:
            return self._codec.decode(raw)
        except ValueError:
            logger.info("Discarding invalid or expired session cookie")
            return None

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        presented = self._settings.cookie_name in request.cookies
        session_id = self._read_cookie(request)
        is_new = session_id is None
        if session_id is None:
            session_id = self._codec.new_session_id()

        setattr(request.state, SESSION_ID_ATTR, session_id)
        setattr(request.state, SESSION_USED_ATTR, False)

        response = await call_next(request)

        if not getattr(request.state, SESSION_USED_ATTR, False):
            return response

        exists = self._store.get(session_id) is not None
        if is_new and exists:
            response.set_cookie(
                self._settings.cookie_name,
                self._codec.encode(session_id),
                max_age=self._settings.ttl_seconds,
                httponly=True,
                samesite="lax",
                secure=self._settings.cookie_secure,
            )
        elif presented and not exists:
            response.delete_cookie(
                self._settings.cookie_name,
                httponly=True,
                samesite="lax",
                secure=self._settings.cookie_secure,
            )
        return response


__all__ = ["SESSION_ID_ATTR", "SESSION_USED_ATTR", "SessionCookieMiddleware"]
