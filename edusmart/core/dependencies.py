import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client

from edusmart.core.errors import AuthenticationError, AuthorizationError
from edusmart.core.policy import Caller, Role
from edusmart.core.security import decode_token
from edusmart.db import store
from edusmart.db.supabase import get_supabase

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Client = Depends(get_supabase),
) -> dict:
    """
    Resolve the bearer token to an active user row.

    Raises:
        AuthenticationError: 401 if the token is missing or the account is
            unknown or deactivated, 403 if the token is invalid or expired
    """
    if credentials is None:
        raise AuthenticationError("Access token required", "Kirish tokeni talab qilinadi")

    payload = decode_token(credentials.credentials)
    user = store.get_by_id(db, "users", payload["sub"])

    if not user or not user.get("is_active"):
        logger.info("Rejected token for missing or deactivated user %s", payload["sub"])
        raise AuthenticationError(
            "Invalid or deactivated user",
            "Yaroqsiz yoki faolsizlantirilgan foydalanuvchi",
        )
    return user


def get_current_caller(
    user: dict = Depends(get_current_user),
    db: Client = Depends(get_supabase),
) -> Caller:
    """Authenticated user plus the owned profile the authorization rules need."""
    return store.load_caller(db, user)


def require_roles(*roles: Role):
    """
    Dependency factory restricting an endpoint to the given roles.
    """
    def role_checker(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in roles:
            raise AuthorizationError("Insufficient permissions", "Ruxsat etilmagan")
        return caller
    return role_checker


require_admin = require_roles(Role.ADMIN)
require_admin_or_teacher = require_roles(Role.ADMIN, Role.TEACHER)
