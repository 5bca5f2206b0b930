"""Pytest configuration shared across the suite."""

from __future__ import annotations

import pytest

from leadflow.core.config import AppSettings, SalesforceSettings, SessionSettings
from leadflow.main import create_app

CALLBACK_URL = "https://app.example.com/oauth/callback"
LOGIN_URL = "https://login.example.com"
INSTANCE_URL = "https://example.my.provider.com"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def salesforce_settings() -> SalesforceSettings:
    return SalesforceSettings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        callback_url=CALLBACK_URL,
        login_url=LOGIN_URL,
        scopes="openid api",
        api_version="v59.0",
        http_timeout_seconds=10.0,
    )


@pytest.fixture
def app_settings(salesforce_settings: SalesforceSettings) -> AppSettings:
    return AppSettings(
        salesforce=salesforce_settings,
        session=SessionSettings(secret="test-session-secret", backend="memory"),
    )


@pytest.fixture
def app(app_settings: AppSettings):
    application = create_app(app_settings)
    yield application
    application.dependency_overrides.clear()

