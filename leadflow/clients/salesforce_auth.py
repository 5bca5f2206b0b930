"""
Salesforce OAuth utilities.

Builds authorization URLs for the Authorization Code + PKCE flow and trades
authorization codes for access tokens.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from leadflow.clients.pkce import CHALLENGE_METHOD
from leadflow.core.config import SalesforceSettings
from leadflow.core.errors import TokenExchangeFailed
from leadflow.schemas import AuthorizationRequest, TokenExchangeResult

logger = logging.getLogger(__name__)


def _upstream_error(response: httpx.Response) -> Optional[Dict[str, Any]]:
    """Return the decoded error body of a failed response when it is JSON."""
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


class SalesforceOAuthClient:
    """Build Salesforce authorization URLs and exchange authorization codes."""

    AUTHORIZE_PATH = "/services/oauth2/authorize"
    TOKEN_PATH = "/services/oauth2/token"

    def __init__(
        self,
        settings: SalesforceSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def authorize_url(self) -> str:
        return f"{self._settings.login_url}{self.AUTHORIZE_PATH}"

    @property
    def token_url(self) -> str:
        return f"{self._settings.login_url}{self.TOKEN_PATH}"

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """Construct the Salesforce consent URL."""
        request = AuthorizationRequest(
            client_id=self._settings.client_id or "",
            redirect_uri=self._settings.callback_url or "",
            scope=self._settings.scopes,
            state=state,
            code_challenge=code_challenge,
            code_challenge_method=CHALLENGE_METHOD,
        )
        return request.to_url(self.authorize_url)

    async def exchange_authorization_code(
        self, code: str, code_verifier: str
    ) -> TokenExchangeResult:
        """
        Exchange an authorization code and its PKCE verifier for tokens.

        A single attempt is made; any failure raises ``TokenExchangeFailed``.
        """
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._settings.client_id or "",
            "client_secret": self._settings.client_secret or "",
            "redirect_uri": self._settings.callback_url or "",
            "code_verifier": code_verifier,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.token_url, data=payload)
        except httpx.TimeoutException as exc:
            logger.error("Token exchange timed out after %ss", self._settings.http_timeout_seconds)
            raise TokenExchangeFailed(
                "Token exchange timed out. Please try again."
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Token exchange transport error: %s", exc)
            raise TokenExchangeFailed(f"Token exchange failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            error_body = _upstream_error(response)
            description = None
            if error_body:
                description = error_body.get("error_description") or error_body.get("error")
            logger.error(
                "Token endpoint returned %s: %s",
                response.status_code,
                error_body or response.text,
            )
            raise TokenExchangeFailed(
                f"Authentication failed: {description or response.reason_phrase}",
                details=error_body,
            )

        try:
            return TokenExchangeResult.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            logger.error("Token endpoint returned an unusable payload")
            raise TokenExchangeFailed(
                "Incomplete token payload returned from Salesforce."
            ) from exc


__all__ = ["SalesforceOAuthClient"]
