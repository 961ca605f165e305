from fastapi import APIRouter, Depends, Query, Request, Response, status
from supabase import Client
from edusmart.core import aggregates
from edusmart.core.dependencies import get_current_caller, require_admin_or_teacher
from edusmart.core.errors import ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import Between, Eq, QuerySpec, compose, compose_filters, pagination_meta, with_filters
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.modules.attendance import service
from edusmart.schemas.attendance import (
    AttendanceBatch,
    AttendanceCreate,
    AttendanceResponse,
    AttendanceUpdate,
)
from edusmart.schemas.common import serialize, serialize_many
from edusmart.schemas.queries import AttendanceReportParams, AttendanceStatisticsParams
from datetime import date as date_type
from typing import Optional
from uuid import UUID

router = APIRouter(tags=["Attendance"])

STATISTICS_FILTERS = {"class_id": "class_id", "student_id": "student_id", "subject_id": "subject_id"}


@router.get("/")
def list_attendance(request: Request, caller: Caller = Depends(get_current_caller),
                    db: Client = Depends(get_supabase)):
    """
    List attendance records, most recent first.
    """
    spec = compose("attendance", request.query_params, caller)
    rows, total = store.fetch_page(db, "attendance", spec)
    return envelope({
        "attendance": serialize_many(AttendanceResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def mark_attendance(
    attendance: AttendanceCreate,
    response: Response,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Mark attendance for a student.

    Marking the same student, class and date again updates the existing
    record and answers 200 instead of 201.
    """
    row, created = service.mark(db, caller, attendance)
    if not created:
        response.status_code = status.HTTP_200_OK
        return envelope({"attendance": serialize(AttendanceResponse, row)},
                        "Attendance updated successfully", "Davomat muvaffaqiyatli yangilandi")
    return envelope({"attendance": serialize(AttendanceResponse, row)},
                    "Attendance marked successfully", "Davomat muvaffaqiyatli belgilandi")


@router.post("/batch")
def batch_mark_attendance(
    batch: AttendanceBatch,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Mark several records. Not atomic: each item reports its own outcome.
    """
    results = service.mark_batch(db, caller, batch.attendance_records)
    succeeded = sum(1 for r in results if r["success"])
    failed = len(results) - succeeded
    return envelope(
        {"results": results, "processed": succeeded, "failed": failed},
        f"{succeeded} attendance records processed, {failed} failed",
        f"{succeeded} ta davomat yozuvi qayta ishlandi, {failed} ta xato",
    )


@router.get("/report")
def attendance_report(request: Request, caller: Caller = Depends(require_admin_or_teacher),
                      db: Client = Depends(get_supabase)):
    """
    Attendance report for a date range, grouped per student.
    """
    params, spec = compose_filters(AttendanceReportParams, request.query_params, STATISTICS_FILTERS, "date")
    rows = store.fetch_all(db, "attendance", spec)
    by_student = aggregates.attendance_by_student(rows)
    return envelope({
        "period": {"startDate": params.start_date.isoformat(), "endDate": params.end_date.isoformat()},
        "summary": aggregates.attendance_statistics(rows),
        "students": [
            {"studentId": student_id, "attendanceRate": group["summary"]["attendanceRate"],
             "summary": group["summary"], "records": serialize_many(AttendanceResponse, group["records"])}
            for student_id, group in by_student.items()
        ],
    })


@router.get("/statistics")
def attendance_statistics(request: Request, caller: Caller = Depends(require_admin_or_teacher),
                          db: Client = Depends(get_supabase)):
    _, spec = compose_filters(AttendanceStatisticsParams, request.query_params, STATISTICS_FILTERS, "date")
    rows = store.fetch_all(db, "attendance", spec, "status")
    return envelope({"statistics": aggregates.attendance_statistics(rows)})


@router.get("/student/{student_id}/summary")
def student_attendance_summary(
    student_id: UUID,
    start_date: Optional[date_type] = Query(None, alias="startDate"),
    end_date: Optional[date_type] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_caller),
    db: Client = Depends(get_supabase),
):
    """
    Attendance statistics for one student, optionally within a date range.
    """
    check(caller, Operation.READ, Target(Resource.ATTENDANCE, student_id=str(student_id)))
    store.get_or_404(db, "students", str(student_id), "Student not found", "O'quvchi topilmadi")
    spec = _student_spec(str(student_id), start_date, end_date)
    rows = store.fetch_all(db, "attendance", spec)
    return envelope({"studentId": str(student_id), "statistics": aggregates.attendance_statistics(rows)})


def _student_spec(student_id: str, start_date=None, end_date=None):
    if start_date and end_date and end_date < start_date:
        raise ValidationError("endDate must be greater than or equal to startDate")
    conditions = {"student_id": Eq(student_id)}
    if start_date or end_date:
        conditions["date"] = Between(
            start_date.isoformat() if start_date else None,
            end_date.isoformat() if end_date else None,
        )
    return QuerySpec(filters=conditions)


@router.get("/class/{class_id}/summary")
def class_attendance_summary(
    class_id: UUID,
    request: Request,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Attendance statistics for a class, overall and per student.
    """
    store.get_or_404(db, "classes", str(class_id), "Class not found", "Sinf topilmadi")
    params = {k: v for k, v in request.query_params.items() if k != "classId"}
    _, spec = compose_filters(AttendanceStatisticsParams, params, STATISTICS_FILTERS, "date")
    rows = store.fetch_all(db, "attendance", with_filters(spec, class_id=Eq(str(class_id))))
    return envelope({
        "classId": str(class_id),
        "statistics": aggregates.attendance_statistics(rows),
        "byStudent": {
            student_id: group["summary"]
            for student_id, group in aggregates.attendance_by_student(rows).items()
        },
    })


@router.get("/daily/{day}")
def daily_attendance(
    day: date_type,
    class_id: Optional[UUID] = Query(None, alias="classId"),
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    All attendance marked on one day, optionally for a single class.
    """
    filters = {"date": day.isoformat()}
    if class_id:
        filters["class_id"] = str(class_id)
    rows = store.select_where(db, "attendance", **filters)
    return envelope({
        "date": day.isoformat(),
        "statistics": aggregates.attendance_statistics(rows),
        "attendance": serialize_many(AttendanceResponse, rows),
    })


@router.get("/{attendance_id}")
def get_attendance(attendance_id: UUID, caller: Caller = Depends(get_current_caller),
                   db: Client = Depends(get_supabase)):
    record = store.get_or_404(db, "attendance", str(attendance_id),
                              "Attendance record not found", "Davomat yozuvi topilmadi")
    check(caller, Operation.READ, service.attendance_target(record))
    return envelope({"attendance": serialize(AttendanceResponse, record)})


@router.put("/{attendance_id}")
def update_attendance(
    attendance_id: UUID,
    attendance: AttendanceUpdate,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Update an attendance record. Teachers may only change records they marked.
    """
    if not attendance.model_fields_set:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    row = service.update(db, caller, str(attendance_id), attendance)
    return envelope({"attendance": serialize(AttendanceResponse, row)},
                    "Attendance updated successfully", "Davomat muvaffaqiyatli yangilandi")
