"""Encryption of the session identifier carried in the browser cookie."""

from __future__ import annotations

import base64
import hashlib
import secrets

from cryptography.fernet import Fernet, InvalidToken


class SessionCookieCodec:
    """Seal session identifiers into timestamped Fernet tokens.

    The Fernet timestamp is the moment the session started, so a ``ttl``
    check on decode yields a fixed wall-clock lifetime.
    """

    def __init__(self, *, secret: str, ttl_seconds: int) -> None:
        if not secret:
            raise ValueError("Session secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))
        self._ttl = ttl_seconds

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    def encode(self, session_id: str) -> str:
        """Return the cookie value for a session identifier."""
        return self._fernet.encrypt(session_id.encode("utf-8")).decode("utf-8")

    def decode(self, cookie_value: str) -> str:
        """Return the session identifier sealed in ``cookie_value``."""
        try:
            session_id = self._fernet.decrypt(cookie_value.encode("utf-8"), ttl=self._ttl)
        except InvalidToken as exc:
            raise ValueError("Session cookie is invalid or expired.") from exc
        return session_id.decode("utf-8")


__all__ = ["SessionCookieCodec"]
