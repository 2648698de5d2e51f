"""Email verification and password reset routes."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import Session

from wisdom_api.core.database import get_session
from wisdom_api.limits import FORGOT_PASSWORD_LIMIT, RESET_PASSWORD_LIMIT, VERIFY_EMAIL_LIMIT
from wisdom_api.services import verification

from .utils import limiter, user_payload

router = APIRouter()


class TokenPayload(BaseModel):
    token: str = Field(min_length=1, max_length=256)


class EmailPayload(BaseModel):
    email: EmailStr


class ResetPasswordPayload(BaseModel):
    token: str = Field(min_length=1, max_length=256)
    password: str


@router.post("/verify-email")
@limiter.limit(VERIFY_EMAIL_LIMIT)
def verify_email(
    request: Request,
    payload: TokenPayload,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    result = verification.verify_email(session, payload.token)
    return {
        "message": "Email verified successfully",
        "user": user_payload(result.user),
        "token": result.token,
    }


@router.post("/resend-verification")
@limiter.limit(FORGOT_PASSWORD_LIMIT)
def resend_verification(
    request: Request,
    payload: EmailPayload,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    return {"message": verification.resend_verification(session, payload.email)}


@router.post("/forgot-password")
@limiter.limit(FORGOT_PASSWORD_LIMIT)
def forgot_password(
    request: Request,
    payload: EmailPayload,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """Always answers the same way so callers cannot probe which emails exist."""
    return {"message": verification.forgot_password(session, payload.email)}


@router.post("/reset-password")
@limiter.limit(RESET_PASSWORD_LIMIT)
def reset_password(
    request: Request,
    payload: ResetPasswordPayload,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    verification.reset_password(session, payload.token, payload.password)
    return {"message": "Password updated. You can now log in with your new password."}
