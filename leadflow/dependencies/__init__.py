"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_session_codec,
    build_session_store,
    get_authorization_flow,
    get_salesforce_oauth_client,
    get_salesforce_rest_client,
    get_session_store,
)
from .config import SettingsDependency, get_app_settings
from .session import get_session_id

__all__ = [
    "SettingsDependency",
    "build_session_codec",
    "build_session_store",
    "get_app_settings",
    "get_authorization_flow",
    "get_salesforce_oauth_client",
    "get_salesforce_rest_client",
    "get_session_id",
    "get_session_store",
]
