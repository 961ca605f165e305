"""
Attendance marking.

A (student, class, date) triple has at most one record. Marking again
overwrites status, times, reason and notes in place; the last writer wins.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from supabase import Client

from edusmart.core.errors import ApiError, ConflictError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.db import store
from edusmart.modules.grades.service import authoring_teacher_id
from edusmart.schemas.attendance import AttendanceCreate, AttendanceResponse, AttendanceUpdate
from edusmart.schemas.common import serialize, to_row

logger = logging.getLogger(__name__)

OVERWRITTEN = ("status", "time_in", "time_out", "reason", "notes", "subject_id", "teacher_id")


def attendance_target(row: dict) -> Target:
    return Target(
        Resource.ATTENDANCE,
        id=row.get("id"),
        student_id=row.get("student_id"),
        teacher_id=row.get("teacher_id"),
        class_id=row.get("class_id"),
        subject_id=row.get("subject_id"),
    )


def _existing(db: Client, data: dict):
    rows = store.select_where(
        db, "attendance",
        student_id=data["student_id"], class_id=data["class_id"], date=data["date"],
    )
    return rows[0] if rows else None


def mark(db: Client, caller: Caller, payload: AttendanceCreate) -> tuple[dict, bool]:
    """
    Insert or overwrite the record for (student, class, date).

    Returns:
        (row, created) where created is False when an existing record was updated
    """
    teacher_id = authoring_teacher_id(caller, str(payload.teacher_id) if payload.teacher_id else None)
    data = to_row(payload, teacher_id=teacher_id)
    check(caller, Operation.CREATE, attendance_target(data))

    now = datetime.now(timezone.utc).isoformat()
    existing = _existing(db, data)
    if existing is None:
        try:
            row = store.insert_row(db, "attendance", {**data, "id": str(uuid4()), "created_at": now, "updated_at": now})
            logger.info("Attendance %s marked %s for student %s", row["id"], row["status"], row["student_id"])
            return row, True
        except ConflictError:
            # another request inserted the same triple first
            existing = _existing(db, data)
            if existing is None:
                raise

    changes = {column: data[column] for column in OVERWRITTEN if column in data}
    changes["updated_at"] = now
    row = store.update_row(db, "attendance", existing["id"], changes)
    logger.info("Attendance %s overwritten with %s", row["id"], row["status"])
    return row, False


def update(db: Client, caller: Caller, attendance_id: str, payload: AttendanceUpdate) -> dict:
    record = store.get_or_404(db, "attendance", attendance_id,
                              "Attendance record not found", "Davomat yozuvi topilmadi")
    check(caller, Operation.UPDATE, attendance_target(record))

    changes = to_row(payload)
    if not changes:
        return record
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    return store.update_row(db, "attendance", attendance_id, changes)


def mark_batch(db: Client, caller: Caller, items: Iterable[dict]) -> list:
    """Mark each record independently; earlier successes survive later failures."""
    results = []
    for index, item in enumerate(items):
        try:
            payload = AttendanceCreate.model_validate(item)
            row, created = mark(db, caller, payload)
            results.append({
                "index": index,
                "success": True,
                "created": created,
                "attendance": serialize(AttendanceResponse, row),
            })
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            results.append({"index": index, "success": False,
                            "message": f"{field}: {first['msg']}" if field else first["msg"],
                            "message_uz": "Ma'lumot tekshirish xatosi"})
        except ApiError as exc:
            results.append({"index": index, "success": False,
                            "message": exc.message, "message_uz": exc.message_uz})
    return results
