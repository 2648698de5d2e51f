"""Rate limiting configuration for the FastAPI application."""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from wisdom_api.exceptions import error_payload
from wisdom_api.limits import DISABLE as RL_DISABLED
from wisdom_api.limits import limiter

if TYPE_CHECKING:
    from fastapi import FastAPI, Request


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        error_payload("rate_limit_exceeded", "Too many requests. Please wait a moment before trying again.", request),
        status_code=429,
        headers={"Retry-After": "60"},
    )


def configure_rate_limiting(app: FastAPI) -> None:
    """Install slowapi unless DISABLE_RATE_LIMITS=1 swapped in the no-op limiter."""
    if RL_DISABLED:
        return
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
