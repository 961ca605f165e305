"""
Read-only reports built from the aggregate calculator.
"""
from fastapi import APIRouter, Depends, Query, Request
from supabase import Client
from edusmart.core import aggregates
from edusmart.core.academic import current_academic_year, current_semester
from edusmart.core.dependencies import get_current_caller, require_admin_or_teacher, require_roles
from edusmart.core.errors import AuthorizationError
from edusmart.core.policy import Caller, Operation, Resource, Role, Target, check
from edusmart.core.query import compose_filters
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.modules.grades.service import student_summary
from edusmart.schemas.common import serialize
from edusmart.schemas.queries import ACADEMIC_YEAR, GradeStatisticsParams
from edusmart.schemas.students import StudentResponse
from datetime import date
from typing import Optional
from uuid import UUID

router = APIRouter(tags=["Reports"])


def _student_report(db: Client, student: dict) -> dict:
    grades = store.select_where(db, "grades", student_id=student["id"])
    attendance = store.select_where(db, "attendance", "status", student_id=student["id"])
    return {
        "student": serialize(StudentResponse, student),
        "grades": student_summary(grades),
        "attendance": aggregates.attendance_statistics(attendance),
    }


def _require_profile(caller: Caller):
    if caller.profile is None:
        raise AuthorizationError("Profile not found", "Profil topilmadi")
    return caller.profile


@router.get("/dashboard-summary")
def dashboard_summary(caller: Caller = Depends(get_current_caller), db: Client = Depends(get_supabase)):
    """
    Home screen numbers, shaped by role:

    - admin: school-wide counts, current-term grade statistics and today's attendance
    - teacher: the same, limited to the teacher's classes and grades
    - student: own grade summary and attendance
    - parent: one entry per linked child
    """
    academic_year = current_academic_year()
    semester = current_semester()
    today = date.today().isoformat()
    summary = {"role": caller.role.value, "academicYear": academic_year, "semester": semester}

    if caller.role is Role.ADMIN:
        grades = store.select_where(db, "grades", "grade_value", academic_year=academic_year, semester=semester)
        attendance = store.select_where(db, "attendance", "status", date=today)
        summary.update({
            "counts": {
                "students": store.count_where(db, "students", status="active"),
                "teachers": store.count_where(db, "teachers", status="active"),
                "classes": store.count_where(db, "classes", status="active"),
                "subjects": store.count_where(db, "subjects", status="active"),
            },
            "gradeStatistics": aggregates.grade_statistics(grades),
            "todayAttendance": aggregates.attendance_statistics(attendance),
        })

    elif caller.role is Role.TEACHER:
        profile = _require_profile(caller)
        grades = store.select_where(db, "grades", "grade_value", teacher_id=profile.id,
                                    academic_year=academic_year, semester=semester)
        attendance = store.select_where(db, "attendance", "status", teacher_id=profile.id, date=today)
        summary.update({
            "counts": {
                "classes": len(profile.class_ids),
                "subjects": len(profile.subject_ids),
                "students": sum(store.count_where(db, "students", class_id=class_id, status="active")
                                for class_id in profile.class_ids),
            },
            "gradeStatistics": aggregates.grade_statistics(grades),
            "todayAttendance": aggregates.attendance_statistics(attendance),
        })

    elif caller.role is Role.STUDENT:
        profile = _require_profile(caller)
        student = store.get_or_404(db, "students", profile.id, "Student not found", "O'quvchi topilmadi")
        summary.update(_student_report(db, student))

    else:
        profile = _require_profile(caller)
        children = store.select_in(db, "students", "id", profile.student_ids)
        summary["children"] = [_student_report(db, child) for child in children]

    return envelope(summary)


@router.get("/grade-distribution")
def grade_distribution(request: Request, caller: Caller = Depends(require_admin_or_teacher),
                       db: Client = Depends(get_supabase)):
    """
    Counts and percentages per grade bucket, with the level descriptions.
    """
    _, spec = compose_filters(GradeStatisticsParams, request.query_params, {
        "class_id": "class_id", "subject_id": "subject_id",
        "semester": "semester", "academic_year": "academic_year",
    })
    rows = store.fetch_all(db, "grades", spec, "grade_value")
    stats = aggregates.grade_statistics(rows)
    return envelope({
        "total": stats["total"],
        "average": stats["average"],
        "distribution": [
            {
                "level": bucket,
                **aggregates.GRADE_LEVELS[bucket],
                "count": count,
                "percentage": aggregates.percentage(count, stats["total"]),
            }
            for bucket, count in stats["distribution"].items()
        ],
    })


@router.get("/class-performance")
def class_performance(
    academic_year: Optional[str] = Query(None, alias="academicYear", pattern=ACADEMIC_YEAR),
    semester: Optional[int] = Query(None, ge=1, le=2),
    caller: Caller = Depends(require_admin_or_teacher),
    db: Client = Depends(get_supabase),
):
    """
    Grade and attendance figures for every active class, best average first.
    """
    filters = {"status": "active"}
    if academic_year:
        filters["academic_year"] = academic_year
    classes = store.select_where(db, "classes", **filters)

    grade_filters = {"semester": semester} if semester else {}
    performance = []
    for klass in classes:
        grades = store.select_where(db, "grades", "grade_value", class_id=klass["id"], **grade_filters)
        attendance = store.select_where(db, "attendance", "status", class_id=klass["id"])
        performance.append({
            "classId": klass["id"],
            "name": klass["name"],
            "grade": klass["grade"],
            "section": klass.get("section"),
            "studentCount": store.count_where(db, "students", class_id=klass["id"], status="active"),
            "gradeStatistics": aggregates.grade_statistics(grades),
            "attendanceRate": aggregates.attendance_rate(aggregates.attendance_counts(attendance)),
        })
    performance.sort(key=lambda c: c["gradeStatistics"]["average"], reverse=True)
    return envelope({"classes": performance})


@router.get("/parent-summary")
def parent_summary(caller: Caller = Depends(require_roles(Role.PARENT)), db: Client = Depends(get_supabase)):
    """
    Grade and attendance statistics for each of the parent's children.
    """
    profile = _require_profile(caller)
    children = store.select_in(db, "students", "id", profile.student_ids)
    return envelope({"children": [_student_report(db, child) for child in children]})


@router.get("/student-performance/{student_id}")
def student_performance(student_id: UUID, caller: Caller = Depends(get_current_caller),
                        db: Client = Depends(get_supabase)):
    check(caller, Operation.READ, Target(Resource.REPORT, student_id=str(student_id)))
    student = store.get_or_404(db, "students", str(student_id), "Student not found", "O'quvchi topilmadi")
    report = _student_report(db, student)

    grades = store.select_where(db, "grades", student_id=str(student_id))
    terms = {}
    for grade in grades:
        terms.setdefault((grade["academic_year"], grade["semester"]), []).append(grade)
    report["trend"] = [
        {"academicYear": year, "semester": term, "gpa": aggregates.calculate_gpa(rows), "count": len(rows)}
        for (year, term), rows in sorted(terms.items())
    ]
    return envelope(report)
