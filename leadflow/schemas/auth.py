"""Schemas related to the Salesforce OAuth flow."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urlencode

from pydantic import BaseModel, Field


class AuthorizationRequest(BaseModel):
    """Query parameters sent to the Salesforce authorize endpoint."""

    response_type: str = "code"
    client_id: str
    redirect_uri: str
    scope: str
    state: str = Field(..., description="Anti-forgery token echoed back on callback.")
    code_challenge: str
    code_challenge_method: str = "S256"

    def to_url(self, authorize_endpoint: str) -> str:
        query = urlencode(self.model_dump(), safe="", quote_via=quote)
        return f"{authorize_endpoint}?{query}"


class TokenExchangeResult(BaseModel):
    """Fields of a successful token endpoint response that the app keeps."""

    access_token: str = Field(..., min_length=1)
    instance_url: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None


__all__ = ["AuthorizationRequest", "TokenExchangeResult"]
