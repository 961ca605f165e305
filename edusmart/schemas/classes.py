from pydantic import Field
from typing import Optional
from uuid import UUID
from edusmart.schemas.common import CamelModel
from edusmart.schemas.queries import ACADEMIC_YEAR, ActiveStatus


class ClassCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    grade: int = Field(..., ge=1, le=11)
    section: str = Field("A", min_length=1, max_length=5)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR)
    max_students: int = Field(30, ge=1)
    class_teacher_id: Optional[UUID] = None
    schedule: Optional[dict] = None


class ClassUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    grade: Optional[int] = Field(None, ge=1, le=11)
    section: Optional[str] = Field(None, min_length=1, max_length=5)
    academic_year: Optional[str] = Field(None, pattern=ACADEMIC_YEAR)
    max_students: Optional[int] = Field(None, ge=1)
    class_teacher_id: Optional[UUID] = None
    schedule: Optional[dict] = None


class TeacherAssignment(CamelModel):
    teacher_id: UUID


class ClassResponse(CamelModel):
    id: str
    name: str
    grade: int
    section: str
    academic_year: str
    max_students: Optional[int] = None
    class_teacher_id: Optional[str] = None
    schedule: Optional[dict] = None
    status: ActiveStatus = "active"
