from fastapi import APIRouter, Depends, Request, status
from supabase import Client
from edusmart.core.dependencies import get_current_caller, require_admin
from edusmart.core.errors import ConflictError, ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import compose, pagination_meta
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.schemas.classes import TeacherAssignment
from edusmart.schemas.common import serialize, serialize_many, to_row
from edusmart.schemas.subjects import SubjectCreate, SubjectResponse, SubjectUpdate
from datetime import datetime, timezone
from uuid import UUID, uuid4
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Subjects"])


def _get_subject(db: Client, subject_id: UUID) -> dict:
    return store.get_or_404(db, "subjects", str(subject_id), "Subject not found", "Fan topilmadi")


def _ensure_code_free(db: Client, code: str, subject_id: str = None) -> None:
    for row in store.select_where(db, "subjects", "id", code=code):
        if row["id"] != subject_id:
            raise ConflictError("Subject code already exists", "Fan kodi allaqachon mavjud",
                                extra={"field": "code"})


@router.get("/")
def list_subjects(request: Request, caller: Caller = Depends(get_current_caller),
                  db: Client = Depends(get_supabase)):
    spec = compose("subjects", request.query_params)
    rows, total = store.fetch_page(db, "subjects", spec)
    return envelope({
        "subjects": serialize_many(SubjectResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_subject(subject: SubjectCreate, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    """
    Create a subject. Codes are unique and stored upper-case.
    """
    code = subject.code.upper()
    _ensure_code_free(db, code)
    now = datetime.now(timezone.utc).isoformat()
    row = store.insert_row(db, "subjects", to_row(
        subject, id=str(uuid4()), code=code, status="active", created_at=now, updated_at=now,
    ))
    logger.info("Subject %s (%s) created", row["id"], code)
    return envelope({"subject": serialize(SubjectResponse, row)},
                    "Subject created successfully", "Fan muvaffaqiyatli yaratildi")


@router.get("/{subject_id}")
def get_subject(subject_id: UUID, caller: Caller = Depends(get_current_caller),
                db: Client = Depends(get_supabase)):
    check(caller, Operation.READ, Target(Resource.SUBJECT, subject_id=str(subject_id)))
    return envelope({"subject": serialize(SubjectResponse, _get_subject(db, subject_id))})


@router.put("/{subject_id}")
def update_subject(subject_id: UUID, subject: SubjectUpdate, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    changes = to_row(subject)
    if not changes:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    _get_subject(db, subject_id)
    if "code" in changes:
        changes["code"] = changes["code"].upper()
        _ensure_code_free(db, changes["code"], str(subject_id))
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.update_row(db, "subjects", str(subject_id), changes)
    return envelope({"subject": serialize(SubjectResponse, row)},
                    "Subject updated successfully", "Fan muvaffaqiyatli yangilandi")


@router.delete("/{subject_id}")
def delete_subject(subject_id: UUID, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    _get_subject(db, subject_id)
    store.update_row(db, "subjects", str(subject_id),
                     {"status": "inactive", "updated_at": datetime.now(timezone.utc).isoformat()})
    logger.info("Subject %s deactivated", subject_id)
    return envelope(message="Subject deleted successfully", message_uz="Fan muvaffaqiyatli o'chirildi")


@router.post("/{subject_id}/teachers", status_code=status.HTTP_201_CREATED)
def assign_teacher(subject_id: UUID, assignment: TeacherAssignment, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    _get_subject(db, subject_id)
    store.get_or_404(db, "teachers", str(assignment.teacher_id), "Teacher not found", "O'qituvchi topilmadi")
    row = store.insert_row(db, "teacher_subjects", {
        "subject_id": str(subject_id),
        "teacher_id": str(assignment.teacher_id),
    })
    logger.info("Teacher %s assigned to subject %s", assignment.teacher_id, subject_id)
    return envelope({"assignment": row}, "Teacher assigned successfully", "O'qituvchi muvaffaqiyatli biriktirildi")
