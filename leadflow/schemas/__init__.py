"""Public schema exports."""

from .auth import AuthorizationRequest, TokenExchangeResult
from .lead import LEAD_SOURCE, LeadCreated, LeadCreateRequest

__all__ = [
    "AuthorizationRequest",
    "LEAD_SOURCE",
    "LeadCreateRequest",
    "LeadCreated",
    "TokenExchangeResult",
]
