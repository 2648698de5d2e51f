"""Session token issuing and verification (stateless HS256 JWTs)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from uuid import UUID

from jose import JWTError, jwt

from .config import settings
from .errors import InvalidToken

SESSION_TOKEN_TTL = timedelta(days=7)


@dataclass(frozen=True)
class TokenClaims:
    user_id: UUID
    email: str
    issued_at: datetime
    expires_at: datetime


def issue_token(user_id: UUID | str, email: str, *, now: datetime | None = None) -> str:
    """Sign a session token for the given identity, valid for seven days."""
    issued = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": int(issued.timestamp()),
        "exp": int((issued + SESSION_TOKEN_TTL).timestamp()),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _claims_from_payload(payload: Mapping[str, Any]) -> TokenClaims:
    sub = payload.get("sub")
    email = payload.get("email")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if not isinstance(sub, str) or not isinstance(email, str) or not email:
        raise InvalidToken()
    if not isinstance(iat, (int, float)) or not isinstance(exp, (int, float)):
        raise InvalidToken()
    try:
        user_id = UUID(sub)
    except ValueError:
        raise InvalidToken()
    return TokenClaims(
        user_id=user_id,
        email=email,
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )


def verify_token(token: str) -> TokenClaims:
    """Return the claims of a valid token; raise InvalidToken otherwise.

    python-jose rejects bad signatures and expired ``exp`` claims; anything
    that decodes but lacks the expected claims is rejected here.
    """
    if not token:
        raise InvalidToken()
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True, "require_iat": True, "require_sub": True},
        )
    except JWTError:
        raise InvalidToken()
    return _claims_from_payload(payload)
