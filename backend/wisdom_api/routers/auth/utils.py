"""Shared helpers for the authentication routers."""

from __future__ import annotations

from typing import Any

from wisdom_api.core.auth import get_current_user, is_admin, is_admin_email, require_admin
from wisdom_api.limits import limiter
from wisdom_api.models.user import User, UserPublic


def to_user_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user, from_attributes=True)


def user_payload(user: User) -> dict[str, Any]:
    return to_user_public(user).model_dump(mode="json")


__all__ = [
    "get_current_user",
    "is_admin",
    "is_admin_email",
    "limiter",
    "require_admin",
    "to_user_public",
    "user_payload",
]
