"""FastAPI application factory.

This module provides the create_app() function that creates and configures
the FastAPI application instance. The app.py file uses this to expose the
app instance for ASGI servers.
"""
from __future__ import annotations

from fastapi import FastAPI


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    1. Logging and Sentry configuration
    2. FastAPI app instantiation
    3. Password hash warmup
    4. Middleware, rate limiting and exception handlers
    5. Routes
    6. Startup/shutdown hooks
    """
    from wisdom_api.config.logging import configure_logging, setup_sentry
    from wisdom_api.core.config import settings
    from wisdom_api.core.logging import get_logger

    configure_logging()
    env = (settings.APP_ENV or "dev").lower()
    setup_sentry(environment=env, dsn=settings.SENTRY_DSN)

    log = get_logger("wisdom_api.main")

    # Explicit debug=False outside dev so tracebacks never leak
    app = FastAPI(title="Wisdom Hub API", debug=settings.is_dev_mode)

    # Pre-warm password hashing so the first signup isn't slow
    from wisdom_api.core.security import get_password_hash
    get_password_hash("__warmup__")

    from wisdom_api.config.middleware import configure_middleware
    configure_middleware(app, settings)

    from wisdom_api.config.rate_limit import configure_rate_limiting
    configure_rate_limiting(app)

    from wisdom_api.exceptions import install_exception_handlers
    install_exception_handlers(app)

    from wisdom_api.routing import attach_routers
    attach_routers(app)

    from wisdom_api.config.startup import register_startup
    register_startup(app)

    log.info("[startup] Application configured (env=%s)", env)
    return app
