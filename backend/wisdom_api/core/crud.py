from sqlmodel import Session, select
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import Optional
from uuid import UUID

from .errors import DuplicateEmail, audit_conflict
from .security import hash_token
from ..models.user import User, UserCreate, normalize_email

# --- User CRUD ---

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    statement = select(User).where(User.email == normalize_email(email))
    return session.exec(statement).first()


def get_user_by_id(session: Session, user_id: UUID) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_verification_token(session: Session, token: str) -> Optional[User]:
    if not token:
        return None
    statement = select(User).where(User.verification_token_hash == hash_token(token))
    return session.exec(statement).first()


def get_user_by_reset_token(session: Session, token: str) -> Optional[User]:
    if not token:
        return None
    statement = select(User).where(User.reset_token_hash == hash_token(token))
    return session.exec(statement).first()


def create_user(
    session: Session,
    user_create: UserCreate,
    hashed_password: str,
    verification_token: str,
    verification_expires_at: datetime,
) -> User:
    """Insert an unverified user together with its verification token.

    The email pre-check is only a fast path; the unique index is what keeps two
    concurrent signups from both succeeding.
    """
    email = normalize_email(user_create.email)
    if get_user_by_email(session, email) is not None:
        raise audit_conflict(DuplicateEmail(), {"stage": "precheck"})

    db_user = User(
        email=email,
        name=user_create.name,
        timezone=user_create.timezone,
        interests=[i.value for i in user_create.interests],
        hashed_password=hashed_password,
        email_verified=False,
        verification_token_hash=hash_token(verification_token),
        verification_token_expires_at=verification_expires_at,
    )
    session.add(db_user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise audit_conflict(DuplicateEmail(), {"stage": "insert"})
    session.refresh(db_user)
    return db_user


def set_verification_token(session: Session, user: User, token: str, expires_at: datetime) -> User:
    user.verification_token_hash = hash_token(token)
    user.verification_token_expires_at = expires_at
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def set_email_verified(session: Session, user_id: UUID, token: str, now: datetime | None = None) -> bool:
    """Consume a verification token and mark the user verified in one UPDATE.

    Returns False when the token no longer matches (already used, rotated or
    expired), so two concurrent requests cannot both succeed.
    """
    now = now or datetime.utcnow()
    statement = (
        update(User)
        .where(
            User.id == user_id,
            User.verification_token_hash == hash_token(token),
            User.verification_token_expires_at > now,
        )
        .values(
            email_verified=True,
            verification_token_hash=None,
            verification_token_expires_at=None,
        )
    )
    result = session.execute(statement)
    session.commit()
    return result.rowcount == 1


def set_reset_token(session: Session, user: User, token: str, expires_at: datetime) -> User:
    user.reset_token_hash = hash_token(token)
    user.reset_token_expires_at = expires_at
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def clear_reset_token_and_set_password_hash(
    session: Session,
    user_id: UUID,
    token: str,
    hashed_password: str,
    now: datetime | None = None,
) -> bool:
    """Single-use password reset; same semantics as set_email_verified."""
    now = now or datetime.utcnow()
    statement = (
        update(User)
        .where(
            User.id == user_id,
            User.reset_token_hash == hash_token(token),
            User.reset_token_expires_at > now,
        )
        .values(
            hashed_password=hashed_password,
            reset_token_hash=None,
            reset_token_expires_at=None,
        )
    )
    result = session.execute(statement)
    session.commit()
    return result.rowcount == 1


def touch_last_login(session: Session, user: User) -> User:
    user.last_login = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
