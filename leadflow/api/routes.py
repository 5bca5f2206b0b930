"""
FastAPI routes for the Salesforce lead capture app.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from pathlib import Path
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError as PydanticValidationError

from leadflow.core.errors import ValidationError
from leadflow.dependencies import (
    get_authorization_flow,
    get_salesforce_rest_client,
    get_session_id,
)
from leadflow.schemas import LeadCreated, LeadCreateRequest

router = APIRouter()
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"


def _not_authenticated() -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.UNAUTHORIZED,
        content={"error": "Not authenticated"},
    )


def _parse_lead(raw_body: bytes) -> LeadCreateRequest:
    """Parse the lead form body; an empty body is an empty lead."""
    if not raw_body.strip():
        return LeadCreateRequest()
    try:
        return LeadCreateRequest.model_validate_json(raw_body)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid lead payload",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Liveness probe; touches neither the session nor Salesforce."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/", include_in_schema=False)
async def login_page() -> FileResponse:
    return FileResponse(STATIC_DIR / "login.html")


@router.get("/auth/provider")
async def start_salesforce_oauth_flow(
    flow: Annotated[Any, Depends(get_authorization_flow)],
    session_id: Annotated[str, Depends(get_session_id)],
) -> RedirectResponse:
    """Store a fresh PKCE verifier and state, then redirect to Salesforce."""
    logger.info("Starting OAuth flow")
    authorization_url = flow.initiate(session_id)
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.FOUND)


@router.get("/oauth/callback")
async def handle_salesforce_oauth_callback(
    flow: Annotated[Any, Depends(get_authorization_flow)],
    session_id: Annotated[str, Depends(get_session_id)],
    code: Optional[str] = Query(default=None, description="Authorization code."),
    state: Optional[str] = Query(default=None, description="Anti-forgery state."),
    error: Optional[str] = Query(default=None),
    error_description: Optional[str] = Query(default=None),
) -> RedirectResponse:
    """Complete the OAuth exchange and send the browser to the lead form."""
    await flow.handle_callback(
        session_id,
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )
    return RedirectResponse(url="/protected-view", status_code=HTTPStatus.FOUND)


@router.get("/protected-view", include_in_schema=False, response_model=None)
async def lead_form_page(
    flow: Annotated[Any, Depends(get_authorization_flow)],
    session_id: Annotated[str, Depends(get_session_id)],
) -> FileResponse | RedirectResponse:
    if not flow.is_authenticated(session_id):
        logger.info("No access token, redirecting to login")
        return RedirectResponse(url="/", status_code=HTTPStatus.FOUND)
    return FileResponse(STATIC_DIR / "app.html")


@router.get("/api/user", response_model=None)
async def get_current_user(
    flow: Annotated[Any, Depends(get_authorization_flow)],
    rest_client: Annotated[Any, Depends(get_salesforce_rest_client)],
    session_id: Annotated[str, Depends(get_session_id)],
) -> dict | JSONResponse:
    """Return the Salesforce user info of the signed-in user."""
    session = flow.authenticated_session(session_id)
    if session is None:
        return _not_authenticated()
    return await rest_client.get_user_info(session.access_token, session.instance_url)


@router.post("/api/lead", response_model=LeadCreated)
async def create_lead(
    flow: Annotated[Any, Depends(get_authorization_flow)],
    rest_client: Annotated[Any, Depends(get_salesforce_rest_client)],
    session_id: Annotated[str, Depends(get_session_id)],
    request: Request,
) -> Any:
    """Create a Lead; authentication is checked before the body is parsed."""
    session = flow.authenticated_session(session_id)
    if session is None:
        return _not_authenticated()
    lead = _parse_lead(await request.body())
    return await rest_client.create_lead(session.access_token, session.instance_url, lead)


@router.post("/api/logout")
async def logout(
    flow: Annotated[Any, Depends(get_authorization_flow)],
    session_id: Annotated[str, Depends(get_session_id)],
) -> dict:
    logger.info("Logging out")
    flow.logout(session_id)
    return {"success": True}


__all__ = ["router"]
