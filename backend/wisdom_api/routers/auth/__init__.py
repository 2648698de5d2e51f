"""Authentication router package aggregating credential and verification flows."""

from __future__ import annotations

from fastapi import APIRouter

from . import credentials, verification
from .utils import get_current_user, limiter, require_admin, to_user_public, user_payload

router = APIRouter(prefix="/auth", tags=["Authentication"])
router.include_router(credentials.router)
router.include_router(verification.router)

__all__ = [
    "get_current_user",
    "limiter",
    "require_admin",
    "router",
    "to_user_public",
    "user_payload",
]
