"""
Authorization Code + PKCE flow against Salesforce.

The controller owns the per-session OAuth state machine::

    Unauthenticated --initiate--> PendingCallback --callback ok--> Authenticated
    PendingCallback --callback error--> Unauthenticated
    Authenticated --logout--> Unauthenticated

Session state is read from and written back to a ``SessionStore`` on every
transition; nothing is kept on the controller itself.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional, Protocol

from leadflow.clients import pkce
from leadflow.core.config import SalesforceSettings
from leadflow.core.errors import (
    ConfigurationError,
    MissingAuthorizationCode,
    SessionExpired,
    StateMismatch,
    UpstreamAuthorizationError,
)
from leadflow.schemas import TokenExchangeResult
from leadflow.services.session_store import SessionState, SessionStore

logger = logging.getLogger(__name__)


class OAuthClient(Protocol):
    def build_authorization_url(self, state: str, code_challenge: str) -> str: ...

    async def exchange_authorization_code(
        self, code: str, code_verifier: str
    ) -> TokenExchangeResult: ...


def _states_match(returned: Optional[str], expected: Optional[str]) -> bool:
    if not returned or not expected:
        return False
    return hmac.compare_digest(returned.encode("utf-8"), expected.encode("utf-8"))


class AuthorizationFlowController:
    """Drive the initiate/callback/logout transitions for a session."""

    def __init__(
        self,
        *,
        store: SessionStore,
        oauth_client: OAuthClient,
        settings: SalesforceSettings,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._settings = settings

    def _load(self, session_id: str) -> SessionState:
        return self._store.get(session_id) or SessionState()

    def initiate(self, session_id: str) -> str:
        """Start a new flow and return the Salesforce authorization URL."""
        missing = self._settings.missing_required()
        if missing:
            logger.error("Cannot start OAuth flow, missing settings: %s", ", ".join(missing))
            raise ConfigurationError(
                "Missing Salesforce configuration. Please check your .env file.",
                details={"missing": missing},
            )

        verifier = pkce.generate_verifier()
        challenge = pkce.generate_challenge(verifier)
        state = pkce.generate_anti_forgery_token()

        session = self._load(session_id)
        session.begin_flow(code_verifier=verifier, oauth_state=state)
        self._store.put(session_id, session)

        logger.info("PKCE challenge generated, redirecting to Salesforce")
        return self._oauth.build_authorization_url(state=state, code_challenge=challenge)

    async def handle_callback(
        self,
        session_id: str,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> SessionState:
        """Validate the provider redirect and exchange the code for a token."""
        if error:
            logger.error("OAuth error from Salesforce: %s %s", error, error_description or "")
            raise UpstreamAuthorizationError(
                f"Authorization failed: {error_description or error}",
                details={"error": error, "error_description": error_description},
            )

        if not code:
            logger.error("No authorization code received")
            raise MissingAuthorizationCode("Authorization code not found")

        session = self._store.get(session_id)
        if session is None or not session.is_pending:
            logger.error("Code verifier not found in session")
            if session is not None:
                session.clear_pending()
                self._store.put(session_id, session)
            raise SessionExpired("Session expired. Please try again.")

        expected_state = session.oauth_state
        verifier = session.code_verifier or ""
        # The verifier is single use: it leaves the store before any network call.
        session.clear_pending()
        self._store.put(session_id, session)

        if not _states_match(state, expected_state):
            logger.error("Invalid OAuth state on callback")
            raise StateMismatch("Invalid OAuth state. Please try again.")

        logger.info("Exchanging authorization code for access token")
        result = await self._oauth.exchange_authorization_code(code, verifier)

        session.authenticate(result.access_token, result.instance_url)
        self._store.put(session_id, session)
        logger.info("OAuth successful, access token obtained")
        return session

    def logout(self, session_id: Optional[str]) -> None:
        if session_id:
            self._store.delete(session_id)
        logger.info("Session logged out")

    def authenticated_session(self, session_id: Optional[str]) -> Optional[SessionState]:
        """Return the session when it holds an access token, else ``None``."""
        if not session_id:
            return None
        session = self._store.get(session_id)
        if session is None or not session.is_authenticated:
            return None
        return session

    def is_authenticated(self, session_id: Optional[str]) -> bool:
        return self.authenticated_session(session_id) is not None


__all__ = ["AuthorizationFlowController", "OAuthClient"]
