"""Routes handling credential-based authentication flows."""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, EmailStr
from sqlmodel import Session

from wisdom_api.core.database import get_session
from wisdom_api.limits import LOGIN_LIMIT, SIGNUP_LIMIT
from wisdom_api.models.user import User, UserCreate, UserProfileUpdate
from wisdom_api.services import verification

from .utils import get_current_user, limiter, user_payload

router = APIRouter()


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


@router.post("/signup", status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
def signup(
    request: Request,
    user_in: UserCreate,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Register a new, unverified user and email a verification link."""
    user = verification.signup(session, user_in)
    return {
        "user": user_payload(user),
        "requiresVerification": True,
        "message": "Account created. Check your email to verify your address.",
    }


@router.post("/login")
@limiter.limit(LOGIN_LIMIT)
def login(
    request: Request,
    payload: LoginPayload,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    result = verification.login(session, payload.email, payload.password)
    return {"user": user_payload(result.user), "token": result.token}


@router.get("/me")
def read_me(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"user": user_payload(current_user)}


@router.patch("/me")
def update_me(
    changes: UserProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Update name, timezone and/or interests."""
    user = verification.update_profile(session, current_user, changes)
    return {"user": user_payload(user)}
