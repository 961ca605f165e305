from datetime import datetime, timedelta, timezone

import jwt
import pytest

from edusmart.core.config import settings
from edusmart.core.errors import AuthenticationError
from edusmart.core.security import (
    REFRESH,
    create_access_token,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_malformed_hash_does_not_verify():
    assert not verify_password("secret123", "not-a-bcrypt-hash")


def test_access_token_round_trip():
    payload = decode_token(create_access_token("user-1", "teacher"))
    assert payload["sub"] == "user-1"
    assert payload["role"] == "teacher"


def test_refresh_token_is_not_an_access_token():
    tokens = create_token_pair("user-1", "student")
    assert decode_token(tokens["refreshToken"], expected_type=REFRESH)["sub"] == "user-1"
    with pytest.raises(AuthenticationError) as excinfo:
        decode_token(tokens["refreshToken"])
    assert excinfo.value.status_code == 403


def test_expired_token_is_forbidden():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": "user-1", "role": "admin", "type": "access",
         "iat": int(past.timestamp()), "exp": int((past + timedelta(minutes=5)).timestamp())},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(AuthenticationError) as excinfo:
        decode_token(token)
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Token expired"


def test_token_signed_with_other_secret_is_forbidden():
    token = jwt.encode({"sub": "user-1", "role": "admin", "type": "access"}, "another-secret-of-decent-length!")
    with pytest.raises(AuthenticationError) as excinfo:
        decode_token(token)
    assert excinfo.value.status_code == 403
