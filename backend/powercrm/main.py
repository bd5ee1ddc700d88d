"""FastAPI application factory for the Power CRM backend."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from powercrm.core.config import settings
from powercrm.core.exceptions import PowerCRMException
from powercrm.core.i18n import INTERNAL_ERROR, VALIDATION_ERROR
from powercrm.core.logging import setup_logging
from powercrm.core.security_headers import install_security_headers_middleware
from powercrm.routers import auth, health, history, tickets, users, workspace

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)
    settings.validate_runtime_security()

    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )
    install_security_headers_middleware(app, settings)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(tickets.router, prefix="/api/tickets", tags=["tickets"])
    app.include_router(history.router, prefix="/api/history", tags=["history"])
    app.include_router(health.router, prefix="/api/health", tags=["health"])
    # Alternate task workspace authenticated by Supabase.
    app.include_router(workspace.router, prefix="/api/workspace", tags=["workspace"])

    @app.exception_handler(PowerCRMException)
    async def handle_domain_exception(_: Request, exc: PowerCRMException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": VALIDATION_ERROR,
                "error": VALIDATION_ERROR,
                "error_code": "VALIDATION_ERROR",
                "details": {"errors": errors},
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": INTERNAL_ERROR,
                "error": str(exc) if settings.is_development else INTERNAL_ERROR,
                "error_code": "INTERNAL_ERROR",
                "details": {},
            },
        )

    return app


app = create_app()
