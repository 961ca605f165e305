import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import bcrypt
import jwt

from edusmart.core.config import settings
from edusmart.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _encode(user_id: str, role: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "role": role,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, role: str) -> str:
    return _encode(user_id, role, ACCESS, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: str, role: str) -> str:
    return _encode(user_id, role, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def create_token_pair(user_id: str, role: str) -> dict[str, str]:
    return {
        "accessToken": create_access_token(user_id, role),
        "refreshToken": create_refresh_token(user_id, role),
    }


def decode_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """
    Validate a token and return its payload.

    Invalid and expired tokens are rejected with 403, following the
    convention clients already rely on; a missing token is the caller's
    401 to raise.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError(
            "Token expired", "Token muddati tugagan", status_code=403
        ) from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(
            "Invalid token", "Yaroqsiz token", status_code=403
        ) from exc

    if "sub" not in payload or "role" not in payload or payload.get("type") != expected_type:
        logger.info("Rejected token with unexpected payload shape")
        raise AuthenticationError("Invalid token", "Yaroqsiz token", status_code=403)
    return payload
