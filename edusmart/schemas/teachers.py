from pydantic import Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from edusmart.schemas.common import CamelModel
from edusmart.schemas.queries import TeacherStatus


class TeacherCreate(CamelModel):
    user_id: UUID
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)
    salary: Optional[float] = Field(None, ge=0)


class TeacherUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)
    salary: Optional[float] = Field(None, ge=0)
    status: Optional[TeacherStatus] = None


class TeacherResponse(CamelModel):
    id: str
    employee_number: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    address: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = None
    hire_date: Optional[datetime] = None
    status: TeacherStatus = "active"
