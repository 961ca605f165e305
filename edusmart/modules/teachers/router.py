from fastapi import APIRouter, Depends, Request, status
from supabase import Client
from edusmart.core import aggregates
from edusmart.core.academic import current_academic_year, current_semester
from edusmart.core.dependencies import get_current_caller, require_admin
from edusmart.core.errors import ValidationError
from edusmart.core.policy import Caller, Operation, Resource, Target, check
from edusmart.core.query import Eq, compose, pagination_meta, with_filters
from edusmart.core.responses import envelope
from edusmart.db import store
from edusmart.db.supabase import get_supabase
from edusmart.schemas.attendance import AttendanceResponse
from edusmart.schemas.classes import ClassResponse
from edusmart.schemas.common import serialize, serialize_many, to_row
from edusmart.schemas.grades import GradeResponse
from edusmart.schemas.subjects import SubjectResponse
from edusmart.schemas.teachers import TeacherCreate, TeacherResponse, TeacherUpdate
from datetime import date, datetime, timezone
from uuid import UUID, uuid4
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Teachers"])


def _get_teacher(db: Client, teacher_id: UUID) -> dict:
    return store.get_or_404(db, "teachers", str(teacher_id), "Teacher not found", "O'qituvchi topilmadi")


def _own_teacher(caller: Caller, db: Client, teacher_id: UUID) -> dict:
    """Admins see every teacher; a teacher only their own record."""
    check(caller, Operation.READ, Target(Resource.TEACHER, teacher_id=str(teacher_id)))
    return _get_teacher(db, teacher_id)


@router.get("/")
def list_teachers(request: Request, caller: Caller = Depends(require_admin),
                  db: Client = Depends(get_supabase)):
    spec = compose("teachers", request.query_params)
    rows, total = store.fetch_page(db, "teachers", spec)
    return envelope({
        "teachers": serialize_many(TeacherResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_teacher(teacher: TeacherCreate, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    """
    Create a teacher profile for an existing user account.
    """
    store.get_or_404(db, "users", str(teacher.user_id), "User not found", "Foydalanuvchi topilmadi")
    if store.select_where(db, "teachers", "id", user_id=str(teacher.user_id)):
        raise ValidationError("User already has a teacher profile",
                              "Foydalanuvchida allaqachon o'qituvchi profili mavjud")

    now = datetime.now(timezone.utc)
    row = store.insert_row(db, "teachers", to_row(
        teacher,
        id=str(uuid4()),
        employee_number=store.next_sequence_number(db, "teachers", "EMP", 3, now.year),
        hire_date=now.isoformat(),
        status="active",
        created_at=now.isoformat(),
        updated_at=now.isoformat(),
    ))
    logger.info("Teacher %s (%s) created", row["id"], row["employee_number"])
    return envelope({"teacher": serialize(TeacherResponse, row)},
                    "Teacher created successfully", "O'qituvchi muvaffaqiyatli yaratildi")


@router.get("/{teacher_id}")
def get_teacher(teacher_id: UUID, caller: Caller = Depends(get_current_caller),
                db: Client = Depends(get_supabase)):
    return envelope({"teacher": serialize(TeacherResponse, _own_teacher(caller, db, teacher_id))})


@router.put("/{teacher_id}")
def update_teacher(teacher_id: UUID, teacher: TeacherUpdate, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    changes = to_row(teacher)
    if not changes:
        raise ValidationError("No fields to update", "Yangilash uchun maydonlar yo'q")
    _get_teacher(db, teacher_id)
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = store.update_row(db, "teachers", str(teacher_id), changes)
    return envelope({"teacher": serialize(TeacherResponse, row)},
                    "Teacher updated successfully", "O'qituvchi muvaffaqiyatli yangilandi")


@router.delete("/{teacher_id}")
def delete_teacher(teacher_id: UUID, caller: Caller = Depends(require_admin),
                   db: Client = Depends(get_supabase)):
    """
    Soft delete: status becomes terminated.
    """
    _get_teacher(db, teacher_id)
    store.update_row(db, "teachers", str(teacher_id),
                     {"status": "terminated", "updated_at": datetime.now(timezone.utc).isoformat()})
    logger.info("Teacher %s terminated", teacher_id)
    return envelope(message="Teacher deleted successfully", message_uz="O'qituvchi muvaffaqiyatli o'chirildi")


# -------------------------
# TEACHER WORKSPACE
# -------------------------
@router.get("/{teacher_id}/classes")
def get_teacher_classes(teacher_id: UUID, caller: Caller = Depends(get_current_caller),
                        db: Client = Depends(get_supabase)):
    """
    Classes the teacher teaches or leads, with student count, average grade
    and attendance rate for each.
    """
    _own_teacher(caller, db, teacher_id)
    classes = store.select_in(db, "classes", "id", store.teacher_class_ids(db, str(teacher_id)))
    result = []
    for klass in classes:
        grades = store.select_where(db, "grades", "grade_value", class_id=klass["id"])
        attendance = store.select_where(db, "attendance", "status", class_id=klass["id"])
        result.append({
            **serialize(ClassResponse, klass),
            "studentCount": store.count_where(db, "students", class_id=klass["id"], status="active"),
            "averageGrade": aggregates.grade_statistics(grades)["average"],
            "attendanceRate": aggregates.attendance_rate(aggregates.attendance_counts(attendance)),
        })
    return envelope({"classes": result})


@router.get("/{teacher_id}/subjects")
def get_teacher_subjects(teacher_id: UUID, caller: Caller = Depends(get_current_caller),
                         db: Client = Depends(get_supabase)):
    _own_teacher(caller, db, teacher_id)
    subjects = store.select_in(db, "subjects", "id", store.teacher_subject_ids(db, str(teacher_id)))
    result = []
    for subject in subjects:
        grades = store.select_where(db, "grades", "grade_value",
                                    subject_id=subject["id"], teacher_id=str(teacher_id))
        result.append({**serialize(SubjectResponse, subject), "statistics": aggregates.grade_statistics(grades)})
    return envelope({"subjects": result})


@router.get("/{teacher_id}/grades")
def get_teacher_grades(teacher_id: UUID, request: Request, caller: Caller = Depends(get_current_caller),
                       db: Client = Depends(get_supabase)):
    _own_teacher(caller, db, teacher_id)
    spec = with_filters(compose("grades", request.query_params), teacher_id=Eq(str(teacher_id)))
    rows, total = store.fetch_page(db, "grades", spec)
    return envelope({
        "grades": serialize_many(GradeResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.get("/{teacher_id}/attendance")
def get_teacher_attendance(teacher_id: UUID, request: Request, caller: Caller = Depends(get_current_caller),
                           db: Client = Depends(get_supabase)):
    _own_teacher(caller, db, teacher_id)
    spec = with_filters(compose("attendance", request.query_params), teacher_id=Eq(str(teacher_id)))
    rows, total = store.fetch_page(db, "attendance", spec)
    return envelope({
        "attendance": serialize_many(AttendanceResponse, rows),
        "pagination": pagination_meta(spec, total),
    })


@router.get("/{teacher_id}/dashboard")
def get_teacher_dashboard(teacher_id: UUID, caller: Caller = Depends(get_current_caller),
                          db: Client = Depends(get_supabase)):
    """
    Overview for the teacher's home screen for the current academic year
    and semester.
    """
    teacher = _own_teacher(caller, db, teacher_id)
    class_ids = store.teacher_class_ids(db, str(teacher_id))
    academic_year = current_academic_year()
    semester = current_semester()

    grades = store.select_where(db, "grades", teacher_id=str(teacher_id),
                                academic_year=academic_year, semester=semester)
    today = store.select_where(db, "attendance", "status",
                               teacher_id=str(teacher_id), date=date.today().isoformat())
    students = sum(store.count_where(db, "students", class_id=class_id, status="active") for class_id in class_ids)
    recent = sorted(grades, key=lambda g: g.get("grade_date") or "", reverse=True)[:5]

    return envelope({
        "teacher": serialize(TeacherResponse, teacher),
        "academicYear": academic_year,
        "semester": semester,
        "classCount": len(class_ids),
        "subjectCount": len(store.teacher_subject_ids(db, str(teacher_id))),
        "studentCount": students,
        "gradeStatistics": aggregates.grade_statistics(grades),
        "todayAttendance": aggregates.attendance_statistics(today),
        "recentGrades": serialize_many(GradeResponse, recent),
    })
