from fastapi import APIRouter, Depends
from supabase import Client
from edusmart.core.dependencies import require_admin
from edusmart.core.errors import ValidationError
from edusmart.core.policy import Caller
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.schemas.auth import UserResponse
from edusmart.schemas.common import serialize
from datetime import datetime, timezone
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


def _set_active(db: Client, user_id: UUID, active: bool) -> dict:
    store.get_or_404(db, "users", str(user_id), "User not found", "Foydalanuvchi topilmadi")
    changes = {"is_active": active, "updated_at": datetime.now(timezone.utc).isoformat()}
    if not active:
        changes["refresh_token"] = None
    return store.update_row(db, "users", str(user_id), changes)


@router.patch("/{user_id}/deactivate")
def deactivate_user(user_id: UUID, admin: Caller = Depends(require_admin), db: Client = Depends(get_supabase)):
    """
    Deactivate an account. Its tokens stop working immediately. Admin only.
    """
    if str(user_id) == admin.user_id:
        raise ValidationError("Cannot deactivate your own account", "O'z hisobingizni faolsizlantira olmaysiz")
    user = _set_active(db, user_id, False)
    logger.info("User %s deactivated by %s", user_id, admin.user_id)
    return envelope(
        {"user": serialize(UserResponse, user)},
        "User deactivated successfully",
        "Foydalanuvchi muvaffaqiyatli faolsizlantirildi",
    )


@router.patch("/{user_id}/reactivate")
def reactivate_user(user_id: UUID, admin: Caller = Depends(require_admin), db: Client = Depends(get_supabase)):
    """
    Reactivate a previously deactivated account. Admin only.
    """
    user = _set_active(db, user_id, True)
    logger.info("User %s reactivated by %s", user_id, admin.user_id)
    return envelope(
        {"user": serialize(UserResponse, user)},
        "User reactivated successfully",
        "Foydalanuvchi muvaffaqiyatli faollashtirildi",
    )
