from pydantic import Field
from typing import Optional
from edusmart.schemas.common import CamelModel
from edusmart.schemas.queries import ActiveStatus


class SubjectCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    name_uz: Optional[str] = Field(None, max_length=100)
    code: str = Field(..., min_length=2, max_length=20)
    description: Optional[str] = None
    credit_hours: Optional[int] = Field(None, ge=0)
    grade: Optional[int] = Field(None, ge=1, le=11)


class SubjectUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    name_uz: Optional[str] = Field(None, max_length=100)
    code: Optional[str] = Field(None, min_length=2, max_length=20)
    description: Optional[str] = None
    credit_hours: Optional[int] = Field(None, ge=0)
    grade: Optional[int] = Field(None, ge=1, le=11)


class SubjectResponse(CamelModel):
    id: str
    name: str
    name_uz: Optional[str] = None
    code: str
    description: Optional[str] = None
    credit_hours: Optional[int] = None
    grade: Optional[int] = None
    status: ActiveStatus = "active"
