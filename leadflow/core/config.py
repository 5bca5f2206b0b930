"""
Application configuration models and helpers.

Settings are read from the environment (and an optional ``.env`` file). The
Salesforce credentials are optional at load time so the process and its
health probe can start without them; the OAuth flow checks them on use.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOGIN_URL = "https://login.salesforce.com"
DEFAULT_SCOPES = "openid profile email refresh_token api"

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class SalesforceSettings(BaseSettings):
    """Connected App credentials and Salesforce endpoint configuration."""

    model_config = _ENV_CONFIG

    client_id: Optional[str] = Field(None, alias="SF_CLIENT_ID")
    client_secret: Optional[str] = Field(None, alias="SF_CLIENT_SECRET")
    callback_url: Optional[str] = Field(
        None,
        alias="SF_CALLBACK_URL",
        description="Redirect URI registered on the Connected App.",
    )
    login_url: str = Field(DEFAULT_LOGIN_URL, alias="SF_LOGIN_URL")
    scopes: str = Field(DEFAULT_SCOPES, alias="SF_SCOPES")
    api_version: str = Field("v59.0", alias="SF_API_VERSION")
    http_timeout_seconds: float = Field(10.0, alias="SF_HTTP_TIMEOUT", gt=0)

    @field_validator("login_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("scopes", mode="before")
    @classmethod
    def _normalize_scopes(cls, value: str | list[str] | tuple[str, ...]) -> str:
        """Support providing scopes as a comma or space separated string."""
        if isinstance(value, (list, tuple)):
            parts = [str(scope).strip() for scope in value]
        else:
            parts = str(value).replace(",", " ").split()
        return " ".join(scope for scope in parts if scope)

    def missing_required(self) -> list[str]:
        """Return the environment names of required settings that are blank."""
        required = {
            "SF_CLIENT_ID": self.client_id,
            "SF_CALLBACK_URL": self.callback_url,
        }
        return [name for name, value in required.items() if not value]


class SessionSettings(BaseSettings):
    """Browser session configuration."""

    model_config = _ENV_CONFIG

    secret: Optional[str] = Field(
        None,
        alias="SESSION_SECRET",
        description="Secret used to derive the session cookie encryption key.",
    )
    ttl_seconds: int = Field(3600, alias="SESSION_TTL", gt=0)
    cookie_name: str = Field("leadflow_session", alias="SESSION_COOKIE_NAME")
    cookie_secure: bool = Field(False, alias="SESSION_COOKIE_SECURE")
    backend: Literal["memory", "sqlite"] = Field("memory", alias="SESSION_BACKEND")
    db_path: str = Field("data/sessions.db", alias="SESSION_DB_PATH")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _ENV_CONFIG

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    salesforce: SalesforceSettings = Field(default_factory=SalesforceSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_LOGIN_URL",
    "DEFAULT_SCOPES",
    "SalesforceSettings",
    "SessionSettings",
    "get_settings",
]
