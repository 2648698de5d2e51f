from __future__ import annotations

import hashlib
import logging
import secrets

from passlib.context import CryptContext

from .config import settings
from .errors import ValidationError

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt ignores input past 72 bytes
MAX_PASSWORD_BYTES = 72

# Use bcrypt for hashing, with the work factor taken from configuration.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain password against a hashed one."""
    try:
        # Unknown/legacy hashes count as a mismatch so callers send 401 not 500
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        log.warning(
            "verify_password failed (invalid/unknown hash); returning False: %s (hash=%s…)",
            type(exc).__name__,
            (hashed_password or "")[:7],
        )
        return False


def dummy_verify() -> None:
    """Spend the same time as a real verification when no user matched."""
    pwd_context.dummy_verify()


def get_password_hash(password: str) -> str:
    """Hashes a plain password."""
    return pwd_context.hash(password)


def generate_token() -> str:
    """32 random bytes, hex encoded, for emailed verification/reset links."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256((token or "").encode("utf-8")).hexdigest()
