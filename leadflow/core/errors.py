"""
Domain exceptions raised by the OAuth flow and the Salesforce clients.

Each exception carries the HTTP status the API layer answers with, so route
handlers can let them propagate to the application's exception handler.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class LeadFlowError(Exception):
    """Base class for errors that map onto a structured HTTP response."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(LeadFlowError):
    """Raised when required Salesforce settings are missing."""


class UpstreamAuthorizationError(LeadFlowError):
    """Raised when Salesforce redirects back with an ``error`` parameter."""

    status_code = HTTPStatus.BAD_REQUEST


class MissingAuthorizationCode(LeadFlowError):
    """Raised when the callback carries neither ``code`` nor ``error``."""

    status_code = HTTPStatus.BAD_REQUEST


class SessionExpired(LeadFlowError):
    """Raised when no pending code verifier exists for the session."""

    status_code = HTTPStatus.BAD_REQUEST


class StateMismatch(LeadFlowError):
    """Raised when the returned ``state`` does not match the stored one."""

    status_code = HTTPStatus.BAD_REQUEST


class TokenExchangeFailed(LeadFlowError):
    """Raised when the token endpoint call fails or returns an unusable body."""


class ValidationError(LeadFlowError):
    """Raised when a lead is missing required fields."""

    status_code = HTTPStatus.BAD_REQUEST


class UpstreamCallFailed(LeadFlowError):
    """An authenticated REST call was rejected or could not be completed."""

    def __init__(
        self,
        message: str,
        *,
        details: Any = None,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status
        if upstream_status == HTTPStatus.UNAUTHORIZED:
            self.status_code = HTTPStatus.UNAUTHORIZED


class RecordCreationFailed(UpstreamCallFailed):
    """Raised when Salesforce does not create the lead."""


class UserInfoFailed(UpstreamCallFailed):
    """Raised when the user info endpoint call fails."""


__all__ = [
    "ConfigurationError",
    "LeadFlowError",
    "MissingAuthorizationCode",
    "RecordCreationFailed",
    "SessionExpired",
    "StateMismatch",
    "TokenExchangeFailed",
    "UpstreamAuthorizationError",
    "UpstreamCallFailed",
    "UserInfoFailed",
    "ValidationError",
]
