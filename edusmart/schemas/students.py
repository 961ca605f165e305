from pydantic import Field
from typing import List, Literal, Optional
from datetime import date, datetime
from uuid import UUID
from edusmart.schemas.common import CamelModel
from edusmart.schemas.queries import Relationship, StudentStatus

Gender = Literal["male", "female"]


class StudentCreate(CamelModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    date_of_birth: date
    gender: Gender
    class_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    medical_info: Optional[str] = None
    notes: Optional[str] = None
    guardian_ids: List[UUID] = []


class StudentUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    class_id: Optional[UUID] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    medical_info: Optional[str] = None
    notes: Optional[str] = None


class StudentStatusUpdate(CamelModel):
    status: StudentStatus
    reason: Optional[str] = Field(None, max_length=500)


class GuardianLink(CamelModel):
    guardian_id: UUID
    relationship: Optional[Relationship] = None
    is_primary: bool = False


class StudentResponse(CamelModel):
    id: str
    student_number: str
    user_id: Optional[str] = None
    class_id: Optional[str] = None
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    enrollment_date: Optional[datetime] = None
    status: StudentStatus = "active"
    medical_info: Optional[str] = None
    notes: Optional[str] = None
