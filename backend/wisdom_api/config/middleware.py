"""Middleware configuration for the FastAPI application."""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

from wisdom_api.middleware.request_id import RequestIDMiddleware
from wisdom_api.middleware.security_headers import SecurityHeadersMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI
    from wisdom_api.core.config import Settings


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure all middleware for the application.

    Starlette runs the last-added middleware first, so the request id is
    assigned before anything else sees the request.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Debug-ID"],
        allow_credentials=True,
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(RequestIDMiddleware)
