from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from jose import jwt

from wisdom_api.core.config import settings
from wisdom_api.core.errors import InvalidToken
from wisdom_api.core.security import generate_token, get_password_hash, hash_token, verify_password
from wisdom_api.core.tokens import SESSION_TOKEN_TTL, issue_token, verify_token


def test_issue_and_verify_roundtrip():
    user_id = uuid4()
    claims = verify_token(issue_token(user_id, "a@example.com"))
    assert claims.user_id == user_id
    assert claims.email == "a@example.com"
    assert claims.expires_at - claims.issued_at == SESSION_TOKEN_TTL


def test_expired_token_rejected():
    issued = datetime.now(timezone.utc) - SESSION_TOKEN_TTL - timedelta(seconds=5)
    token = issue_token(uuid4(), "a@example.com", now=issued)
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_token_signed_with_other_key_rejected():
    now = datetime.now(timezone.utc)
    forged = jwt.encode(
        {"sub": str(uuid4()), "email": "a@example.com", "iat": int(now.timestamp()),
         "exp": int((now + timedelta(hours=1)).timestamp())},
        "some-other-secret-key",
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(InvalidToken):
        verify_token(forged)


def test_token_without_email_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": str(uuid4()), "iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp())},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_empty_token_rejected():
    with pytest.raises(InvalidToken):
        verify_token("")


def test_password_hash_verifies_and_rejects():
    hashed = get_password_hash("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)
    assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")


def test_emailed_tokens_are_random_and_stored_hashed():
    a, b = generate_token(), generate_token()
    assert a != b and len(a) == 64
    assert hash_token(a) != a
    assert hash_token(a) == hash_token(a)
