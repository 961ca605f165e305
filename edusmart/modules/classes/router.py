from fastapi import APIRouter, Depends, Request, status
from supabase import Client
from edusmart.core.dependencies import get_current_caller, require_admin, require_admin_or_teacher
from edusmart.core.errors import ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import compose, pagination_meta
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.schemas.classes import ClassCreate, ClassResponse, ClassUpdate, TeacherAssignment
from edusmart.schemas.common import serialize, serialize_many, to_row
from edusmart.schemas.students import StudentResponse
from datetime import datetime, timezone
from uuid import UUID, uuid4
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Classes"])


def _get_class(db: Client, class_id: UUID) -> dict:
    return store.get_or_404(db, "classes", str(class_id), "Class not found", "Sinf topilmadi")


@router.get("/")
def list_classes(request: Request, caller: Caller = Depends(get_current_caller),
                 db: Client = Depends(get_supabase)):
    spec = compose("classes", request.query_params)
    rows, total = store.fetch_page(db, "classes", spec)
    return envelope({
        "classes": serialize_many(ClassResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_class(klass: ClassCreate, caller: Caller = Depends(require_admin),
                 db: Client = Depends(get_supabase)):
    now = datetime.now(timezone.utc).isoformat()
    row = store.insert_row(db, "classes", to_row(
        klass, id=str(uuid4()), status="active", created_at=now, updated_at=now,
    ))
    logger.info("Class %s (%s) created", row["id"], row["name"])
    return envelope({"class": serialize(ClassResponse, row)},
                    "Class created successfully", "Sinf muvaffaqiyatli yaratildi")


@router.get("/{class_id}")
def get_class(class_id: UUID, caller: Caller = Depends(get_current_caller),
              db: Client = Depends(get_supabase)):
    check(caller, Operation.READ, Target(Resource.CLASS, class_id=str(class_id)))
    klass = _get_class(db, class_id)
    return envelope({
        "class": {
            **serialize(ClassResponse, klass),
            "studentCount": store.count_where(db, "students", class_id=str(class_id), status="active"),
        }
    })


@router.put("/{class_id}")
def update_class(class_id: UUID, klass: ClassUpdate, caller: Caller = Depends(require_admin),
                 db: Client = Depends(get_supabase)):
    changes = to_row(klass)
    if not changes:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    _get_class(db, class_id)
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.update_row(db, "classes", str(class_id), changes)
    return envelope({"class": serialize(ClassResponse, row)},
                    "Class updated successfully", "Sinf muvaffaqiyatli yangilandi")


@router.delete("/{class_id}")
def delete_class(class_id: UUID, caller: Caller = Depends(require_admin),
                 db: Client = Depends(get_supabase)):
    _get_class(db, class_id)
    store.update_row(db, "classes", str(class_id),
                     {"status": "inactive", "updated_at": datetime.now(timezone.utc).isoformat()})
    logger.info("Class %s deactivated", class_id)
    return envelope(message="Class deleted successfully", message_uz="Sinf muvaffaqiyatli o'chirildi")


@router.get("/{class_id}/students")
def get_class_students(class_id: UUID, caller: Caller = Depends(require_admin_or_teacher),
                       db: Client = Depends(get_supabase)):
    _get_class(db, class_id)
    students = store.select_where(db, "students", class_id=str(class_id), status="active")
    students.sort(key=lambda s: (s.get("first_name") or "", s.get("last_name") or ""))
    return envelope({"students": serialize_many(StudentResponse, students)})


@router.post("/{class_id}/teachers", status_code=status.HTTP_201_CREATED)
def assign_teacher(class_id: UUID, assignment: TeacherAssignment, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    """
    Assign a teacher to the class. Assigned teachers may grade and mark
    attendance for it.
    """
    _get_class(db, class_id)
    store.get_or_404(db, "teachers", str(assignment.teacher_id), "Teacher not found", "O'qituvchi topilmadi")
    row = store.insert_row(db, "class_teachers", {
        "class_id": str(class_id),
        "teacher_id": str(assignment.teacher_id),
    })
    logger.info("Teacher %s assigned to class %s", assignment.teacher_id, class_id)
    return envelope({"assignment": row}, "Teacher assigned successfully", "O'qituvchi muvaffaqiyatli biriktirildi")
