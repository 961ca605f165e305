from fastapi import APIRouter, Depends, Request, status
from supabase import Client
from edusmart.core import aggregates
from edusmart.core.dependencies import get_current_caller, require_admin, require_admin_or_teacher
from edusmart.core.errors import NotFoundError, ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import Eq, OneOf, compose, pagination_meta, with_filters
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.modules.grades.service import student_summary
from edusmart.schemas.attendance import AttendanceResponse
from edusmart.schemas.common import serialize, serialize_many, to_row
from edusmart.schemas.grades import GradeResponse
from edusmart.schemas.guardians import GuardianResponse
from edusmart.schemas.students import (
    GuardianLink,
    StudentCreate,
    StudentResponse,
    StudentStatusUpdate,
    StudentUpdate,
)
from datetime import datetime, timezone
from uuid import UUID, uuid4
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Students"])


def _get_student(db: Client, student_id: UUID) -> dict:
    return store.get_or_404(db, "students", str(student_id), "Student not found", "O'quvchi topilmadi")


def _check_student(caller: Caller, student_id: UUID) -> None:
    check(caller, Operation.READ, Target(Resource.STUDENT, student_id=str(student_id)))


# -------------------------
# CRUD
# -------------------------
@router.get("/")
def list_students(request: Request, caller: Caller = Depends(require_admin_or_teacher),
                  db: Client = Depends(get_supabase)):
    """
    List students with search, class/status filters and sorting.
    """
    spec = compose("students", request.query_params, caller)
    grade = request.query_params.get("grade")
    if grade is not None:
        # grade level lives on the class
        class_ids = {row["id"] for row in store.select_where(db, "classes", "id", grade=int(grade))}
        requested = spec.filters.get("class_id")
        if requested is not None:
            class_ids &= {requested.value}
        spec = with_filters(spec, class_id=OneOf(tuple(sorted(class_ids))))
    rows, total = store.fetch_page(db, "students", spec)
    return envelope({
        "students": serialize_many(StudentResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_student(student: StudentCreate, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    """
    Create a student and link the given guardians. The first guardian is primary.
    """
    now = datetime.now(timezone.utc)
    data = to_row(student, id=str(uuid4()))
    guardian_ids = data.pop("guardian_ids", [])
    data.update({
        "student_number": store.next_sequence_number(db, "students", "STU", 4, now.year),
        "enrollment_date": now.isoformat(),
        "status": "active",
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    })
    row = store.insert_row(db, "students", data)

    for index, guardian_id in enumerate(guardian_ids):
        store.insert_row(db, "student_guardians", {
            "student_id": row["id"],
            "guardian_id": guardian_id,
            "is_primary": index == 0,
        })

    logger.info("Student %s (%s) created", row["id"], row["student_number"])
    return envelope({"student": serialize(StudentResponse, row)},
                    "Student created successfully", "O'quvchi muvaffaqiyatli yaratildi")


@router.get("/{student_id}")
def get_student(student_id: UUID, caller: Caller = Depends(get_current_caller),
                db: Client = Depends(get_supabase)):
    """
    Get a student. Students may only see themselves, parents only their children.
    """
    _check_student(caller, student_id)
    return envelope({"student": serialize(StudentResponse, _get_student(db, student_id))})


@router.put("/{student_id}")
def update_student(student_id: UUID, student: StudentUpdate, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    changes = to_row(student)
    if not changes:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    _get_student(db, student_id)
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.update_row(db, "students", str(student_id), changes)
    return envelope({"student": serialize(StudentResponse, row)},
                    "Student updated successfully", "O'quvchi muvaffaqiyatli yangilandi")


@router.patch("/{student_id}/status")
def update_student_status(student_id: UUID, body: StudentStatusUpdate, caller: Caller = Depends(require_admin),
                          db: Client = Depends(get_supabase)):
    _get_student(db, student_id)
    changes = {"status": body.status, "updated_at": datetime.now(timezone.utc).isoformat()}
    if body.reason:
        changes["notes"] = body.reason
    row = store.update_row(db, "students", str(student_id), changes)
    logger.info("Student %s status set to %s", student_id, body.status)
    return envelope({"student": serialize(StudentResponse, row)},
                    "Student status updated successfully", "O'quvchi holati muvaffaqiyatli yangilandi")


@router.delete("/{student_id}")
def delete_student(student_id: UUID, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    """
    Soft delete: the student is marked as withdrawn and keeps its history.
    """
    _get_student(db, student_id)
    store.update_row(db, "students", str(student_id),
                     {"status": "withdrawn", "updated_at": datetime.now(timezone.utc).isoformat()})
    logger.info("Student %s withdrawn", student_id)
    return envelope(message="Student deleted successfully", message_uz="O'quvchi muvaffaqiyatli o'chirildi")


# -------------------------
# GRADES & ATTENDANCE
# -------------------------
@router.get("/{student_id}/grades")
def get_student_grades(student_id: UUID, request: Request, caller: Caller = Depends(get_current_caller),
                       db: Client = Depends(get_supabase)):
    _check_student(caller, student_id)
    _get_student(db, student_id)
    spec = with_filters(
        compose("grades", request.query_params, caller, teacher_scoped=False),
        student_id=Eq(str(student_id)),
    )
    rows, total = store.fetch_page(db, "grades", spec)
    return envelope({
        "grades": serialize_many(GradeResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.get("/{student_id}/grades/summary")
def get_student_grade_summary(student_id: UUID, caller: Caller = Depends(get_current_caller),
                              db: Client = Depends(get_supabase)):
    _check_student(caller, student_id)
    _get_student(db, student_id)
    rows = store.select_where(db, "grades", student_id=str(student_id))
    return envelope({"studentId": str(student_id), **student_summary(rows)})


@router.get("/{student_id}/attendance")
def get_student_attendance(student_id: UUID, request: Request, caller: Caller = Depends(get_current_caller),
                           db: Client = Depends(get_supabase)):
    """
    Paginated attendance records plus statistics over the whole filtered set.
    """
    _check_student(caller, student_id)
    _get_student(db, student_id)
    spec = with_filters(
        compose("attendance", request.query_params, caller, teacher_scoped=False),
        student_id=Eq(str(student_id)),
    )
    rows, total = store.fetch_page(db, "attendance", spec)
    everything = store.fetch_all(db, "attendance", spec, "status")
    return envelope({
        "attendance": serialize_many(AttendanceResponse, rows),
        "statistics": aggregates.attendance_statistics(everything),
        "pagination": pagination_meta(spec, total),
    })


@router.get("/{student_id}/attendance/summary")
def get_student_attendance_summary(student_id: UUID, caller: Caller = Depends(get_current_caller),
                                   db: Client = Depends(get_supabase)):
    _check_student(caller, student_id)
    _get_student(db, student_id)
    rows = store.select_where(db, "attendance", "status", student_id=str(student_id))
    return envelope({"studentId": str(student_id), "statistics": aggregates.attendance_statistics(rows)})


# -------------------------
# GUARDIANS
# -------------------------
@router.get("/{student_id}/guardians")
def get_student_guardians(student_id: UUID, caller: Caller = Depends(get_current_caller),
                          db: Client = Depends(get_supabase)):
    _check_student(caller, student_id)
    _get_student(db, student_id)
    links = store.select_where(db, "student_guardians", student_id=str(student_id))
    guardians = {g["id"]: g for g in store.select_in(db, "guardians", "id", [l["guardian_id"] for l in links])}
    return envelope({"guardians": [
        {
            **serialize(GuardianResponse, guardians[link["guardian_id"]]),
            "isPrimary": bool(link.get("is_primary")),
            "linkRelationship": link.get("relationship"),
        }
        for link in links if link["guardian_id"] in guardians
    ]})


@router.post("/{student_id}/guardians", status_code=status.HTTP_201_CREATED)
def link_guardian(student_id: UUID, link: GuardianLink, caller: Caller = Depends(require_admin),
                  db: Client = Depends(get_supabase)):
    _get_student(db, student_id)
    store.get_or_404(db, "guardians", str(link.guardian_id), "Guardian not found", "Vasiy topilmadi")
    row = store.insert_row(db, "student_guardians", to_row(link, student_id=str(student_id)))
    logger.info("Guardian %s linked to student %s", link.guardian_id, student_id)
    return envelope({"link": row}, "Guardian linked successfully", "Vasiy muvaffaqiyatli bog'landi")


@router.delete("/{student_id}/guardians/{guardian_id}")
def unlink_guardian(student_id: UUID, guardian_id: UUID, caller: Caller = Depends(require_admin),
                    db: Client = Depends(get_supabase)):
    if not store.select_where(db, "student_guardians", "guardian_id",
                              student_id=str(student_id), guardian_id=str(guardian_id)):
        raise NotFoundError("Guardian is not linked to this student", "Vasiy bu o'quvchiga bog'lanmagan")
    store.delete_where(db, "student_guardians", student_id=str(student_id), guardian_id=str(guardian_id))
    return envelope(message="Guardian unlinked successfully", message_uz="Vasiy muvaffaqiyatli ajratildi")
