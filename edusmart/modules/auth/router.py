from fastapi import APIRouter, Depends, status
from supabase import Client
from edusmart.core.dependencies import get_current_caller, get_current_user
from edusmart.core.errors import AuthenticationError, ConflictError
from edusmart.core.policy import Caller
from edusmart.core.responses import envelope
from edusmart.core.security import (
    REFRESH,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    UserResponse,
)
from edusmart.schemas.common import serialize
from datetime import datetime, timezone
from uuid import uuid4
import logging

# Setup logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

PROFILE_TABLES = {"student": "students", "teacher": "teachers", "parent": "guardians"}


def _create_profile(db: Client, user: dict) -> None:
    """Create the role-determined profile row; details are completed later by an admin."""
    role = user["role"]
    base = {
        "id": str(uuid4()),
        "user_id": user["id"],
        "first_name": user["first_name"],
        "last_name": user["last_name"],
    }
    year = datetime.now(timezone.utc).year
    if role == "student":
        base["student_number"] = store.next_sequence_number(db, "students", "STU", 4, year)
        base["status"] = "active"
    elif role == "teacher":
        base["employee_number"] = store.next_sequence_number(db, "teachers", "EMP", 3, year)
        base["status"] = "active"
    else:
        base["relationship"] = "guardian"
        base["status"] = "active"
    store.insert_row(db, PROFILE_TABLES[role], base)


def _issue_tokens(db: Client, user: dict, **changes) -> dict:
    tokens = create_token_pair(user["id"], user["role"])
    store.update_row(db, "users", user["id"], {"refresh_token": tokens["refreshToken"], **changes})
    return tokens


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Client = Depends(get_supabase)):
    """
    Register a new user account.

    Creates the user and the profile matching its role (student, teacher
    or guardian) and returns an access/refresh token pair.
    """
    email = request.email.lower().strip()
    if store.select_where(db, "users", "id", email=email) or \
            store.select_where(db, "users", "id", username=request.username):
        raise ConflictError("User already exists", "Foydalanuvchi allaqachon mavjud")

    now = datetime.now(timezone.utc).isoformat()
    user = store.insert_row(db, "users", {
        "id": str(uuid4()),
        "username": request.username,
        "email": email,
        "password_hash": hash_password(request.password),
        "first_name": request.first_name,
        "last_name": request.last_name,
        "role": request.role,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    })
    _create_profile(db, user)
    tokens = _issue_tokens(db, user)

    logger.info("Registered %s user %s", user["role"], user["id"])
    return envelope(
        {"user": serialize(UserResponse, user), "tokens": tokens},
        "User registered successfully",
        "Foydalanuvchi muvaffaqiyatli ro'yxatdan o'tdi",
    )


@router.post("/login")
def login(request: LoginRequest, db: Client = Depends(get_supabase)):
    """
    Login with email and password to get an access/refresh token pair.
    """
    rows = store.select_where(db, "users", email=request.email.lower().strip())
    user = rows[0] if rows else None

    if not user or not verify_password(request.password, user.get("password_hash") or ""):
        logger.info("Failed login for %s", request.email)
        raise AuthenticationError("Invalid credentials", "Yaroqsiz ma'lumotlar")

    if not user.get("is_active"):
        logger.info("Login attempt on deactivated account %s", user["id"])
        raise AuthenticationError("Account deactivated", "Hisob faolsizlantirilgan")

    tokens = _issue_tokens(db, user, last_login=datetime.now(timezone.utc).isoformat())
    logger.info("User %s logged in", user["id"])
    return envelope(
        {"user": serialize(UserResponse, user), "tokens": tokens},
        "Login successful",
        "Muvaffaqiyatli kirildi",
    )


@router.post("/refresh")
def refresh_token(request: RefreshRequest, db: Client = Depends(get_supabase)):
    """
    Exchange a refresh token for a new token pair.
    """
    if not request.refresh_token:
        raise AuthenticationError("Refresh token required", "Yangilash tokeni talab qilinadi")

    payload = decode_token(request.refresh_token, expected_type=REFRESH)
    user = store.get_by_id(db, "users", payload["sub"])
    if not user or not user.get("is_active") or user.get("refresh_token") != request.refresh_token:
        raise AuthenticationError("Invalid refresh token", "Yaroqsiz yangilash tokeni", status_code=403)

    tokens = _issue_tokens(db, user)
    logger.info("Refreshed tokens for user %s", user["id"])
    return envelope({"tokens": tokens}, "Token refreshed successfully", "Token muvaffaqiyatli yangilandi")


@router.post("/logout")
def logout(user: dict = Depends(get_current_user), db: Client = Depends(get_supabase)):
    store.update_row(db, "users", user["id"], {"refresh_token": None})
    logger.info("User %s logged out", user["id"])
    return envelope(message="Logout successful", message_uz="Muvaffaqiyatli chiqildi")


@router.get("/profile")
def get_profile(
    user: dict = Depends(get_current_user),
    caller: Caller = Depends(get_current_caller),
    db: Client = Depends(get_supabase),
):
    """
    Get the authenticated user together with the owned student, teacher
    or guardian profile.
    """
    profile = None
    table = PROFILE_TABLES.get(user["role"])
    if table and caller.profile_id:
        profile = store.get_by_id(db, table, caller.profile_id)

    return envelope({"user": serialize(UserResponse, user), "profile": profile})


@router.put("/change-password")
def change_password(
    request: ChangePasswordRequest,
    user: dict = Depends(get_current_user),
    db: Client = Depends(get_supabase),
):
    if not verify_password(request.current_password, user.get("password_hash") or ""):
        raise AuthenticationError("Current password is incorrect", "Joriy parol noto'g'ri")

    store.update_row(db, "users", user["id"], {
        "password_hash": hash_password(request.new_password),
        "refresh_token": None,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info("Password changed for user %s", user["id"])
    return envelope(message="Password changed successfully", message_uz="Parol muvaffaqiyatli o'zgartirildi")
