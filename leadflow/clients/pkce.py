"""PKCE (RFC 7636) and anti-forgery token helpers."""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256

VERIFIER_ENTROPY_BYTES = 32
STATE_ENTROPY_BYTES = 16
CHALLENGE_METHOD = "S256"


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_verifier() -> str:
    """Return a fresh code verifier (43 URL-safe characters)."""
    return _b64url(secrets.token_bytes(VERIFIER_ENTROPY_BYTES))


def generate_challenge(verifier: str) -> str:
    """Derive the S256 code challenge: BASE64URL(SHA256(verifier))."""
    return _b64url(sha256(verifier.encode("ascii")).digest())


def generate_anti_forgery_token() -> str:
    """Return an opaque value for the OAuth ``state`` parameter."""
    return _b64url(secrets.token_bytes(STATE_ENTROPY_BYTES))


__all__ = [
    "CHALLENGE_METHOD",
    "generate_anti_forgery_token",
    "generate_challenge",
    "generate_verifier",
]
