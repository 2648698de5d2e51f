"""Account lifecycle: signup, login, email verification and password reset.

A user starts Unverified and moves to Verified exactly once, by presenting the
token that was emailed at signup (or re-sent later). Login is refused until then.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlmodel import Session

from wisdom_api.core import crud
from wisdom_api.core.errors import (
    EmailNotVerified,
    InvalidCredentials,
    InvalidOrExpiredToken,
    ValidationError,
)
from wisdom_api.core.security import (
    dummy_verify,
    generate_token,
    get_password_hash,
    validate_password,
    verify_password,
)
from wisdom_api.core.tokens import issue_token
from wisdom_api.models.user import User, UserCreate, UserProfileUpdate, is_valid_timezone
from wisdom_api.services import notifications

log = logging.getLogger(__name__)

VERIFICATION_TOKEN_TTL = timedelta(hours=24)
RESET_TOKEN_TTL = timedelta(hours=1)

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent."
RESEND_VERIFICATION_MESSAGE = "If that account still needs verification, a new link has been sent."


@dataclass
class AuthResult:
    user: User
    token: str


def _is_expired(expires_at: datetime | None, now: datetime) -> bool:
    return expires_at is None or expires_at <= now


def signup(session: Session, user_in: UserCreate) -> User:
    """Create an unverified account and email its verification link."""
    validate_password(user_in.password)
    token = generate_token()
    user = crud.create_user(
        session,
        user_in,
        hashed_password=get_password_hash(user_in.password),
        verification_token=token,
        verification_expires_at=datetime.utcnow() + VERIFICATION_TOKEN_TTL,
    )
    log.info("[SIGNUP] Created unverified user %s", user.id)
    notifications.send_verification_email(user.email, user.name, token)
    return user


def login(session: Session, email: str, password: str) -> AuthResult:
    user = crud.get_user_by_email(session, email)
    if user is None:
        dummy_verify()
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    # Checked after the password so the response never reveals unverified accounts to guessers
    if not user.email_verified:
        raise EmailNotVerified()
    user = crud.touch_last_login(session, user)
    log.info("[LOGIN] User %s logged in", user.id)
    return AuthResult(user=user, token=issue_token(user.id, user.email))


def verify_email(session: Session, token: str) -> AuthResult:
    now = datetime.utcnow()
    user = crud.get_user_by_verification_token(session, token)
    if user is None or _is_expired(user.verification_token_expires_at, now):
        raise InvalidOrExpiredToken("Invalid or expired verification token")
    if not crud.set_email_verified(session, user.id, token, now=now):
        # Lost a race with a concurrent request for the same token
        raise InvalidOrExpiredToken("Invalid or expired verification token")
    session.refresh(user)
    log.info("[VERIFY] User %s verified their email", user.id)
    notifications.send_welcome_email(user.email, user.name)
    return AuthResult(user=user, token=issue_token(user.id, user.email))


def resend_verification(session: Session, email: str) -> str:
    user = crud.get_user_by_email(session, email)
    if user is not None and not user.email_verified:
        token = generate_token()
        crud.set_verification_token(session, user, token, datetime.utcnow() + VERIFICATION_TOKEN_TTL)
        notifications.send_verification_email(user.email, user.name, token)
        log.info("[VERIFY] Re-sent verification to user %s", user.id)
    return RESEND_VERIFICATION_MESSAGE


def forgot_password(session: Session, email: str) -> str:
    """Start a password reset. The reply is identical whether or not the email exists."""
    user = crud.get_user_by_email(session, email)
    if user is not None:
        token = generate_token()
        crud.set_reset_token(session, user, token, datetime.utcnow() + RESET_TOKEN_TTL)
        notifications.send_password_reset_email(user.email, user.name, token)
        log.info("[RESET] Issued reset token for user %s", user.id)
    return FORGOT_PASSWORD_MESSAGE


def reset_password(session: Session, token: str, new_password: str) -> User:
    validate_password(new_password)
    now = datetime.utcnow()
    user = crud.get_user_by_reset_token(session, token)
    if user is None or _is_expired(user.reset_token_expires_at, now):
        raise InvalidOrExpiredToken("Invalid or expired reset token")
    ok = crud.clear_reset_token_and_set_password_hash(
        session, user.id, token, get_password_hash(new_password), now=now
    )
    if not ok:
        raise InvalidOrExpiredToken("Invalid or expired reset token")
    session.refresh(user)
    log.info("[RESET] Password reset for user %s", user.id)
    return user


def update_profile(session: Session, user: User, changes: UserProfileUpdate) -> User:
    if changes.name is not None:
        name = changes.name.strip()
        if not name:
            raise ValidationError("Name must not be empty")
        user.name = name
    if changes.timezone is not None:
        tz = changes.timezone.strip()
        if not is_valid_timezone(tz):
            raise ValidationError("Invalid timezone")
        user.timezone = tz
    if changes.interests is not None:
        # Preserve order, drop duplicates
        user.interests = list(dict.fromkeys(i.value for i in changes.interests))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
