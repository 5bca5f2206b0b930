"""Expose constructed client wrappers."""

from .salesforce_api import SalesforceRestClient
from .salesforce_auth import SalesforceOAuthClient

__all__ = [
    "SalesforceOAuthClient",
    "SalesforceRestClient",
]
