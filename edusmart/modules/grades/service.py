"""
Grade writes and summaries shared by the grades, students, teachers and
reports routers.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from supabase import Client

from edusmart.core import aggregates
from edusmart.core.errors import ApiError, ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Role, Target, check
from edusmart.db import store
from edusmart.schemas.common import serialize, to_row
from edusmart.schemas.grades import GradeCreate, GradeResponse, GradeUpdate

logger = logging.getLogger(__name__)


def authoring_teacher_id(caller: Caller, requested: Optional[str]) -> str:
    """Teachers always author as themselves; admins must name the teacher."""
    if caller.role is Role.TEACHER:
        return caller.profile_id
    if requested is None:
        raise ValidationError("teacherId is required", "teacherId talab qilinadi")
    return requested


def grade_target(row: dict) -> Target:
    return Target(
        Resource.GRADE,
        id=row.get("id"),
        student_id=row.get("student_id"),
        teacher_id=row.get("teacher_id"),
        class_id=row.get("class_id"),
        subject_id=row.get("subject_id"),
    )


def create_grade(db: Client, caller: Caller, payload: GradeCreate) -> dict:
    teacher_id = authoring_teacher_id(caller, str(payload.teacher_id) if payload.teacher_id else None)
    data = to_row(payload, id=str(uuid4()), teacher_id=teacher_id)
    check(caller, Operation.CREATE, grade_target(data))

    data.setdefault("weight", 1.0)
    data.setdefault("grade_date", datetime.now(timezone.utc).isoformat())
    data["created_at"] = data["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.insert_row(db, "grades", data)
    logger.info("Grade %s created by %s %s", row["id"], caller.role.value, caller.user_id)
    return row


def update_grade(db: Client, caller: Caller, grade_id: str, payload: GradeUpdate) -> dict:
    grade = store.get_or_404(db, "grades", grade_id, "Grade not found", "Baho topilmadi")
    check(caller, Operation.UPDATE, grade_target(grade))

    changes = to_row(payload)
    if not changes:
        return grade
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.update_row(db, "grades", grade_id, changes)
    logger.info("Grade %s updated by %s %s", grade_id, caller.role.value, caller.user_id)
    return row


def create_batch(db: Client, caller: Caller, items: Iterable[dict]) -> list:
    """
    Create grades one by one.

    There is no transaction across the batch: rows created before a failing
    item stay committed and each item gets its own result entry.
    """
    results = []
    for index, item in enumerate(items):
        try:
            payload = GradeCreate.model_validate(item)
            row = create_grade(db, caller, payload)
            results.append({"index": index, "success": True, "grade": serialize(GradeResponse, row)})
        except PydanticValidationError as exc:
            results.append({"index": index, "success": False,
                            "message": exc.errors()[0]["msg"],
                            "message_uz": "Ma'lumot tekshirish xatosi"})
        except ApiError as exc:
            results.append({"index": index, "success": False,
                            "message": exc.message, "message_uz": exc.message_uz})
    return results


def student_summary(grades: list) -> dict:
    """Overall statistics, GPA and per-subject breakdown for one student."""
    return {
        "statistics": aggregates.grade_statistics(grades),
        "gpa": aggregates.calculate_gpa(grades),
        "unweightedGpa": aggregates.calculate_gpa(grades, use_weights=False),
        "bySubject": aggregates.average_by(grades, "subject_id"),
    }
