"""
Factory functions to provide clients and services, both at application
start-up and as FastAPI dependencies.
"""

import logging
import secrets

from fastapi import Depends, Request

from leadflow.clients import SalesforceOAuthClient, SalesforceRestClient
from leadflow.core.config import AppSettings
from leadflow.services import (
    AuthorizationFlowController,
    InMemorySessionStore,
    SessionCookieCodec,
    SessionStore,
    SQLiteSessionStore,
)

from .config import SettingsDependency

logger = logging.getLogger(__name__)


def build_session_store(settings: AppSettings) -> SessionStore:
    """Create the session backend selected by ``SESSION_BACKEND``."""
    session = settings.session
    if session.backend == "sqlite":
        return SQLiteSessionStore(session.db_path, ttl_seconds=session.ttl_seconds)
    return InMemorySessionStore(ttl_seconds=session.ttl_seconds)


def build_session_codec(settings: AppSettings) -> SessionCookieCodec:
    """Create the cookie codec, falling back to a per-process secret."""
    secret = settings.session.secret
    if not secret:
        logger.warning(
            "SESSION_SECRET is not set; using a random key, sessions will not "
            "survive a restart"
        )
        secret = secrets.token_urlsafe(32)
    return SessionCookieCodec(secret=secret, ttl_seconds=settings.session.ttl_seconds)


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_salesforce_oauth_client(
    settings: AppSettings = SettingsDependency,
) -> SalesforceOAuthClient:
    """Provide the Salesforce OAuth client."""
    return SalesforceOAuthClient(settings.salesforce)


def get_salesforce_rest_client(
    settings: AppSettings = SettingsDependency,
) -> SalesforceRestClient:
    """Provide the Salesforce REST client."""
    return SalesforceRestClient(settings.salesforce)


def get_authorization_flow(
    store: SessionStore = Depends(get_session_store),
    oauth_client: SalesforceOAuthClient = Depends(get_salesforce_oauth_client),
    settings: AppSettings = SettingsDependency,
) -> AuthorizationFlowController:
    """Build the OAuth flow controller for a request."""
    return AuthorizationFlowController(
        store=store,
        oauth_client=oauth_client,
        settings=settings.salesforce,
    )


__all__ = [
    "build_session_codec",
    "build_session_store",
    "get_authorization_flow",
    "get_salesforce_oauth_client",
    "get_salesforce_rest_client",
    "get_session_store",
]
