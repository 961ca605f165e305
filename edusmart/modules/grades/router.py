from fastapi import APIRouter, Depends, Request, status
from supabase import Client
from edusmart.core import aggregates
from edusmart.core.dependencies import get_current_caller, require_admin_or_teacher
from edusmart.core.errors import ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import Eq, compose, compose_filters, pagination_meta, with_filters
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.modules.grades import service
from edusmart.schemas.common import serialize, serialize_many
from edusmart.schemas.grades import (
    GpaRequest,
    GradeBatchCreate,
    GradeCreate,
    GradeResponse,
    GradeUpdate,
)
from edusmart.schemas.queries import GradeStatisticsParams, GradeSummaryParams
from uuid import UUID

router = APIRouter(tags=["Grades"])

STATISTICS_FILTERS = {
    "class_id": "class_id",
    "subject_id": "subject_id",
    "semester": "semester",
    "academic_year": "academic_year",
}


@router.get("/")
def list_grades(request: Request, caller: Caller = Depends(get_current_caller), db: Client = Depends(get_supabase)):
    """
    List grades with filtering and pagination.

    Teachers see the grades they gave, students their own, parents their
    children's.
    """
    spec = compose("grades", request.query_params, caller)
    rows, total = store.fetch_page(db, "grades", spec)
    return envelope({
        "grades": serialize_many(GradeResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_grade(
    grade: GradeCreate,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Create a grade. Teachers may only grade classes or subjects assigned to them.
    """
    row = service.create_grade(db, caller, grade)
    return envelope({"grade": serialize(GradeResponse, row)},
                    "Grade created successfully", "Baho muvaffaqiyatli yaratildi")


@router.post("/batch")
def batch_create_grades(
    batch: GradeBatchCreate,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Create several grades. Each item succeeds or fails on its own.
    """
    results = service.create_batch(db, caller, batch.grades)
    created = sum(1 for r in results if r["success"])
    failed = len(results) - created
    return envelope(
        {"results": results, "created": created, "failed": failed},
        f"{created} grades created successfully, {failed} failed",
        f"{created} ta baho muvaffaqiyatli yaratildi, {failed} ta xato",
    )


@router.get("/statistics")
def grade_statistics(request: Request, caller: Caller = Depends(require_admin_or_teacher),
                     db: Client = Depends(get_supabase)):
    _, spec = compose_filters(GradeStatisticsParams, request.query_params, STATISTICS_FILTERS)
    rows = store.fetch_all(db, "grades", spec, "grade_value")
    return envelope({"statistics": aggregates.grade_statistics(rows)})


@router.post("/calculate-gpa")
def calculate_gpa(body: GpaRequest, caller: Caller = Depends(require_admin_or_teacher)):
    """
    Calculate a GPA from arbitrary grade values (weighted by default).
    """
    grades = [item.model_dump() for item in body.grades]
    return envelope({
        "gpa": aggregates.calculate_gpa(grades, use_weights=body.use_weights),
        "count": len(grades),
        "useWeights": body.use_weights,
    })


@router.get("/student/{student_id}/summary")
def student_grade_summary(
    student_id: UUID,
    request: Request,
    caller: Caller = Depends(get_current_caller),
    db: Client = Depends(get_supabase),
):
    """
    Grade summary for one student: statistics, GPA and per-subject averages.
    """
    check(caller, Operation.READ, Target(Resource.GRADE, student_id=str(student_id)))
    store.get_or_404(db, "students", str(student_id), "Student not found", "O'quvchi topilmadi")

    _, spec = compose_filters(GradeSummaryParams, request.query_params, {
        "semester": "semester", "academic_year": "academic_year", "subject_id": "subject_id",
    })
    rows = store.fetch_all(db, "grades", with_filters(spec, student_id=Eq(str(student_id))))
    return envelope({"studentId": str(student_id), **service.student_summary(rows)})


@router.get("/class/{class_id}/summary")
def class_grade_summary(
    class_id: UUID,
    request: Request,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Grade statistics for a class, overall and per student.
    """
    store.get_or_404(db, "classes", str(class_id), "Class not found", "Sinf topilmadi")
    _, spec = compose_filters(GradeSummaryParams, request.query_params, {
        "semester": "semester", "academic_year": "academic_year", "subject_id": "subject_id",
    })
    rows = store.fetch_all(db, "grades", with_filters(spec, class_id=Eq(str(class_id))))
    return envelope({
        "classId": str(class_id),
        "statistics": aggregates.grade_statistics(rows),
        "byStudent": aggregates.average_by(rows, "student_id"),
        "bySubject": aggregates.average_by(rows, "subject_id"),
    })


@router.get("/subject/{subject_id}/statistics")
def subject_statistics(
    subject_id: UUID,
    request: Request,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    store.get_or_404(db, "subjects", str(subject_id), "Subject not found", "Fan topilmadi")
    params = {k: v for k, v in request.query_params.items() if k != "subjectId"}
    _, spec = compose_filters(GradeStatisticsParams, params, STATISTICS_FILTERS)
    rows = store.fetch_all(db, "grades", with_filters(spec, subject_id=Eq(str(subject_id))))
    return envelope({
        "subjectId": str(subject_id),
        "statistics": aggregates.grade_statistics(rows),
        "byGradeType": aggregates.average_by(rows, "grade_type"),
    })


@router.get("/{grade_id}")
def get_grade(grade_id: UUID, caller: Caller = Depends(get_current_caller), db: Client = Depends(get_supabase)):
    grade = store.get_or_404(db, "grades", str(grade_id), "Grade not found", "Baho topilmadi")
    check(caller, Operation.READ, service.grade_target(grade))
    return envelope({"grade": serialize(GradeResponse, grade)})


@router.put("/{grade_id}")
def update_grade(
    grade_id: UUID,
    grade: GradeUpdate,
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Update a grade. Admins may update any grade, teachers only their own.
    """
    if not grade.model_fields_set:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    row = service.update_grade(db, caller, str(grade_id), grade)
    return envelope({"grade": serialize(GradeResponse, row)},
                    "Grade updated successfully", "Baho muvaffaqiyatli yangilandi")
