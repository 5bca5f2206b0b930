"""
FastAPI application entrypoint for the Salesforce lead capture app.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from leadflow.api.routes import router
from leadflow.core.config import AppSettings, get_settings
from leadflow.core.errors import LeadFlowError
from leadflow.core.logging import configure_logging
from leadflow.core.session import SessionCookieMiddleware
from leadflow.dependencies import build_session_codec, build_session_store

logger = logging.getLogger(__name__)


async def _leadflow_error_handler(request: Request, exc: LeadFlowError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"error": exc.message, "details": exc.details}),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": None},
    )


def _report_configuration(settings: AppSettings) -> None:
    salesforce = settings.salesforce
    logger.info("Configuration loaded (environment=%s)", settings.environment)
    logger.info("  Client ID: %s", "set" if salesforce.client_id else "MISSING")
    logger.info("  Client Secret: %s", "set" if salesforce.client_secret else "MISSING")
    logger.info("  Callback URL: %s", salesforce.callback_url or "MISSING")
    logger.info("  Login URL: %s", salesforce.login_url)
    missing = salesforce.missing_required()
    if missing:
        logger.warning(
            "Salesforce login is unavailable until these are set: %s",
            ", ".join(missing),
        )


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Factory for the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    _report_configuration(settings)

    app = FastAPI(
        title="Salesforce Lead Capture",
        version="0.1.0",
        description="Sign in with Salesforce (OAuth 2.0 + PKCE) and create leads.",
    )
    session_store = build_session_store(settings)
    session_codec = build_session_codec(settings)
    app.state.settings = settings
    app.state.session_store = session_store
    app.state.session_codec = session_codec

    app.add_middleware(
        SessionCookieMiddleware,
        codec=session_codec,
        store=session_store,
        settings=settings.session,
    )
    app.add_exception_handler(LeadFlowError, _leadflow_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
