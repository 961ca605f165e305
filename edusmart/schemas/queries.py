from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Literal, Optional
from datetime import date as date_type
from uuid import UUID

GradeType = Literal["assignment", "quiz", "exam", "project", "participation"]
AttendanceStatus = Literal["present", "absent", "late", "excused"]
StudentStatus = Literal["active", "graduated", "transferred", "withdrawn"]
TeacherStatus = Literal["active", "inactive", "terminated"]
ActiveStatus = Literal["active", "inactive"]
Relationship = Literal["father", "mother", "guardian", "other"]
SortOrder = Literal["asc", "desc"]

ACADEMIC_YEAR = r"^\d{4}-\d{4}$"


class QueryParams(BaseModel):
    """Base for query-string models: camelCase keys, unknown keys rejected."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"


class PageParams(QueryParams):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class DateRangeParams(QueryParams):
    start_date: Optional[date_type] = None
    end_date: Optional[date_type] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must be greater than or equal to startDate")
        return self


# -------------------------
# LISTINGS
# -------------------------
class StudentListParams(PageParams):
    search: Optional[str] = Field(None, max_length=100)
    class_id: Optional[UUID] = None
    grade: Optional[int] = Field(None, ge=1, le=11)
    status: Optional[StudentStatus] = None
    sort_by: Optional[Literal["firstName", "lastName", "studentNumber", "enrollmentDate"]] = None
    sort_order: SortOrder = "asc"


class TeacherListParams(PageParams):
    search: Optional[str] = Field(None, max_length=100)
    status: Optional[TeacherStatus] = None
    sort_by: Optional[Literal["firstName", "lastName", "employeeNumber", "hireDate"]] = None
    sort_order: SortOrder = "asc"


class GuardianListParams(PageParams):
    search: Optional[str] = Field(None, max_length=100)
    relationship: Optional[Relationship] = None
    status: Optional[ActiveStatus] = None


class ClassListParams(PageParams):
    limit: int = Field(20, ge=1, le=100)
    grade: Optional[int] = Field(None, ge=1, le=11)
    academic_year: Optional[str] = Field(None, pattern=ACADEMIC_YEAR)
    status: Optional[ActiveStatus] = None
    sort_by: Optional[Literal["name", "grade", "section"]] = None
    sort_order: SortOrder = "asc"


class SubjectListParams(PageParams):
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = Field(None, max_length=100)
    grade: Optional[int] = Field(None, ge=1, le=11)
    status: Optional[ActiveStatus] = None
    sort_by: Optional[Literal["name", "code", "grade"]] = None
    sort_order: SortOrder = "asc"


class GradeListParams(PageParams, DateRangeParams):
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    semester: Optional[int] = Field(None, ge=1, le=2)
    academic_year: Optional[str] = Field(None, pattern=ACADEMIC_YEAR)
    grade_type: Optional[GradeType] = None


class AttendanceListParams(PageParams, DateRangeParams):
    student_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    date: Optional[date_type] = None
    status: Optional[AttendanceStatus] = None


# -------------------------
# STATISTICS / REPORTS
# -------------------------
class GradeStatisticsParams(QueryParams):
    class_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None
    semester: Optional[int] = Field(None, ge=1, le=2)
    academic_year: Optional[str] = Field(None, pattern=ACADEMIC_YEAR)


class GradeSummaryParams(QueryParams):
    semester: Optional[int] = Field(None, ge=1, le=2)
    academic_year: Optional[str] = Field(None, pattern=ACADEMIC_YEAR)
    subject_id: Optional[UUID] = None


class AttendanceStatisticsParams(DateRangeParams):
    class_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    subject_id: Optional[UUID] = None


class AttendanceReportParams(AttendanceStatisticsParams):
    start_date: date_type
    end_date: date_type
