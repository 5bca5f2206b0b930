"""Salesforce REST API client for the authenticated calls the app makes."""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from leadflow.core.config import SalesforceSettings
from leadflow.core.errors import (
    RecordCreationFailed,
    UpstreamCallFailed,
    UserInfoFailed,
    ValidationError,
)
from leadflow.schemas import LeadCreated, LeadCreateRequest

logger = logging.getLogger(__name__)


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _upstream_message(details: Any) -> str | None:
    # Salesforce reports REST errors as a list of {"message", "errorCode"}.
    if isinstance(details, list) and details and isinstance(details[0], dict):
        return details[0].get("message")
    if isinstance(details, dict):
        return details.get("message") or details.get("error_description")
    return None


class SalesforceRestClient:
    """Perform bearer-authenticated calls against a Salesforce instance."""

    USERINFO_PATH = "/services/oauth2/userinfo"

    def __init__(
        self,
        settings: SalesforceSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _lead_url(self, instance_url: str) -> str:
        return (
            f"{instance_url.rstrip('/')}/services/data/"
            f"{self._settings.api_version}/sobjects/Lead"
        )

    async def _send(
        self,
        method: str,
        url: str,
        *,
        access_token: str,
        error_cls: type[UpstreamCallFailed],
        failure_message: str,
        json: Dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.error("%s: %s", failure_message, exc)
            raise error_cls(f"{failure_message}: {exc}") from exc

        if not response.is_success:
            details = _response_details(response)
            logger.error("%s (status %s): %s", failure_message, response.status_code, details)
            upstream = _upstream_message(details)
            message = f"{failure_message}: {upstream}" if upstream else failure_message
            raise error_cls(
                message,
                details=details,
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(
                f"{failure_message}: unreadable response body",
                upstream_status=response.status_code,
            ) from exc

    async def get_user_info(self, access_token: str, instance_url: str) -> Dict[str, Any]:
        """Fetch the OpenID Connect user info of the signed-in user."""
        data = await self._send(
            "GET",
            f"{instance_url.rstrip('/')}{self.USERINFO_PATH}",
            access_token=access_token,
            error_cls=UserInfoFailed,
            failure_message="Failed to fetch user info",
        )
        if not isinstance(data, dict):
            raise UserInfoFailed("Failed to fetch user info: unexpected payload", details=data)
        logger.info("User info retrieved for %s", data.get("name"))
        return data

    async def create_lead(
        self, access_token: str, instance_url: str, lead: LeadCreateRequest
    ) -> LeadCreated:
        """Create a Lead record and return its Salesforce identifier."""
        if lead.missing_required():
            raise ValidationError(
                "Last Name and Company are required",
                details={"missing": lead.missing_required()},
            )

        logger.info("Creating lead for company %s", lead.company)
        data = await self._send(
            "POST",
            self._lead_url(instance_url),
            access_token=access_token,
            error_cls=RecordCreationFailed,
            failure_message="Failed to create lead",
            json=lead.to_salesforce(),
        )

        record_id = data.get("id") if isinstance(data, dict) else None
        if not record_id:
            raise RecordCreationFailed("Failed to create lead: no id returned", details=data)

        logger.info("Lead created with id %s", record_id)
        return LeadCreated(id=record_id)


__all__ = ["SalesforceRestClient"]
