from pydantic import Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from edusmart.core.academic import is_valid_academic_year
from edusmart.schemas.common import CamelModel
from edusmart.schemas.queries import GradeType


class GradeCreate(CamelModel):
    student_id: UUID
    subject_id: UUID
    class_id: UUID
    teacher_id: Optional[UUID] = None  # set from the caller for teachers
    grade_value: float = Field(..., ge=0, le=100)
    grade_type: GradeType
    semester: int = Field(..., ge=1, le=2)
    academic_year: str
    weight: Optional[float] = Field(None, ge=0, le=1)
    grade_date: Optional[datetime] = None
    comments: Optional[str] = None

    @field_validator("academic_year")
    @classmethod
    def check_academic_year(cls, value: str) -> str:
        if not is_valid_academic_year(value):
            raise ValueError("academicYear must be YYYY-YYYY with consecutive years")
        return value


class GradeUpdate(CamelModel):
    grade_value: Optional[float] = Field(None, ge=0, le=100)
    grade_type: Optional[GradeType] = None
    semester: Optional[int] = Field(None, ge=1, le=2)
    academic_year: Optional[str] = None
    weight: Optional[float] = Field(None, ge=0, le=1)
    grade_date: Optional[datetime] = None
    comments: Optional[str] = None

    @field_validator("academic_year")
    @classmethod
    def check_academic_year(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_academic_year(value):
            raise ValueError("academicYear must be YYYY-YYYY with consecutive years")
        return value


class GradeBatchCreate(CamelModel):
    grades: List[dict] = Field(..., min_length=1, max_length=200)


class GpaItem(CamelModel):
    grade_value: float = Field(..., ge=0, le=100)
    weight: Optional[float] = Field(None, ge=0, le=1)


class GpaRequest(CamelModel):
    grades: List[GpaItem] = Field(..., min_length=1)
    use_weights: bool = True


class GradeResponse(CamelModel):
    id: str
    student_id: str
    subject_id: str
    class_id: str
    teacher_id: str
    grade_value: float
    grade_type: GradeType
    semester: int
    academic_year: str
    weight: Optional[float] = None
    grade_date: Optional[datetime] = None
    comments: Optional[str] = None
