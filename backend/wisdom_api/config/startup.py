"""Startup and shutdown hooks for the FastAPI application."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI


def register_startup(app: FastAPI) -> None:
    """Create tables on startup and release pooled connections on shutdown."""
    from wisdom_api.core import database
    from wisdom_api.core.logging import get_logger

    log = get_logger("wisdom_api.config.startup")

    @app.on_event("startup")
    def _create_tables() -> None:
        database.create_db_and_tables()
        log.info("[startup] Database tables ensured")

    @app.on_event("shutdown")
    def _dispose_engine() -> None:
        database.dispose_engine()
