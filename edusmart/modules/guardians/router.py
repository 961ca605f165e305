from fastapi import APIRouter, Depends, Request, status
from supabase import Client
from edusmart.core.dependencies import get_current_caller, require_admin, require_admin_or_teacher
from edusmart.core.errors import ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import compose, pagination_meta
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.schemas.common import serialize, serialize_many, to_row
from edusmart.schemas.guardians import GuardianCreate, GuardianResponse, GuardianUpdate
from edusmart.schemas.students import StudentResponse
from datetime import datetime, timezone
from uuid import UUID, uuid4
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Guardians"])


def _get_guardian(db: Client, guardian_id: UUID) -> dict:
    return store.get_or_404(db, "guardians", str(guardian_id), "Guardian not found", "Vasiy topilmadi")


@router.get("/")
def list_guardians(request: Request, caller: Caller = Depends(require_admin_or_teacher),
                   db: Client = Depends(get_supabase)):
    spec = compose("guardians", request.query_params)
    rows, total = store.fetch_page(db, "guardians", spec)
    return envelope({
        "guardians": serialize_many(GuardianResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_guardian(guardian: GuardianCreate, caller: Caller = Depends(require_admin),
                    db: Client = Depends(get_supabase)):
    now = datetime.now(timezone.utc).isoformat()
    row = store.insert_row(db, "guardians", to_row(
        guardian, id=str(uuid4()), status="active", created_at=now, updated_at=now,
    ))
    logger.info("Guardian %s created", row["id"])
    return envelope({"guardian": serialize(GuardianResponse, row)},
                    "Guardian created successfully", "Vasiy muvaffaqiyatli yaratildi")


@router.get("/{guardian_id}")
def get_guardian(guardian_id: UUID, caller: Caller = Depends(get_current_caller),
                 db: Client = Depends(get_supabase)):
    """
    Get a guardian. Parents may only read their own guardian profile.
    """
    check(caller, Operation.READ, Target(Resource.GUARDIAN, guardian_id=str(guardian_id)))
    return envelope({"guardian": serialize(GuardianResponse, _get_guardian(db, guardian_id))})


@router.put("/{guardian_id}")
def update_guardian(guardian_id: UUID, guardian: GuardianUpdate, caller: Caller = Depends(require_admin),
                    db: Client = Depends(get_supabase)):
    changes = to_row(guardian)
    if not changes:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    _get_guardian(db, guardian_id)
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.update_row(db, "guardians", str(guardian_id), changes)
    return envelope({"guardian": serialize(GuardianResponse, row)},
                    "Guardian updated successfully", "Vasiy muvaffaqiyatli yangilandi")


@router.delete("/{guardian_id}")
def delete_guardian(guardian_id: UUID, caller: Caller = Depends(require_admin),
                    db: Client = Depends(get_supabase)):
    _get_guardian(db, guardian_id)
    store.update_row(db, "guardians", str(guardian_id),
                     {"status": "inactive", "updated_at": datetime.now(timezone.utc).isoformat()})
    logger.info("Guardian %s deactivated", guardian_id)
    return envelope(message="Guardian deleted successfully", message_uz="Vasiy muvaffaqiyatli o'chirildi")


@router.get("/{guardian_id}/students")
def get_guardian_students(guardian_id: UUID, caller: Caller = Depends(get_current_caller),
                          db: Client = Depends(get_supabase)):
    """
    Students linked to the guardian.
    """
    check(caller, Operation.READ, Target(Resource.GUARDIAN, guardian_id=str(guardian_id)))
    _get_guardian(db, guardian_id)
    students = store.select_in(db, "students", "id", store.guardian_student_ids(db, str(guardian_id)))
    return envelope({"students": serialize_many(StudentResponse, students)})
