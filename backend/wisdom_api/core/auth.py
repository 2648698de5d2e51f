from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from wisdom_api.core import crud
from wisdom_api.core.config import settings
from wisdom_api.core.database import get_session
from wisdom_api.core.errors import Forbidden, MissingToken, NotFoundError
from wisdom_api.core.tokens import verify_token
from wisdom_api.models.user import User

logger = logging.getLogger(__name__)

# auto_error=False so a missing header surfaces as our own MissingToken (401)
bearer_scheme = HTTPBearer(auto_error=False)


def is_admin_email(email: str | None) -> bool:
    admin_email = settings.ADMIN_EMAIL or ""
    return bool(email and admin_email and email.lower() == admin_email.lower())


def is_admin(user: Any) -> bool:
    role = str(getattr(user, "role", "") or "").lower()
    return role == "admin" or is_admin_email(getattr(user, "email", None))


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the bearer token to a stored user.

    Missing header -> MissingToken, bad/expired token -> InvalidToken (both 401).
    A valid token for a user that no longer exists -> NotFoundError (404).
    """
    if credentials is None or not credentials.credentials:
        raise MissingToken()
    claims = verify_token(credentials.credentials)
    user = crud.get_user_by_id(session, claims.user_id)
    if user is None:
        logger.info("[auth] token for unknown user %s", claims.user_id)
        raise NotFoundError("User not found")
    request.state.user_id = str(user.id)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not is_admin(user):
        raise Forbidden("Admin access required")
    return user
