from __future__ import annotations

from fastapi import FastAPI
import logging

from wisdom_api.routers import affiliate, billing_webhook, health, payments
from wisdom_api.routers.auth import router as auth_router

log = logging.getLogger(__name__)

ROUTERS = {
    "health": health.router,
    "auth": auth_router,
    "payments": payments.router,
    "billing_webhook": billing_webhook.router,
    "affiliates": affiliate.router,
}


def attach_routers(app: FastAPI) -> dict[str, bool]:
    """Include every API router and report which ones were mounted."""
    availability: dict[str, bool] = {}
    for name, router in ROUTERS.items():
        app.include_router(router)
        availability[name] = True
    log.info("Attached routers: %s", ", ".join(sorted(availability)))
    return availability


__all__ = ["attach_routers", "ROUTERS"]
