from pydantic import Field
from typing import Optional
from uuid import UUID
from edusmart.schemas.common import CamelModel
from edusmart.schemas.auth import EMAIL_PATTERN
from edusmart.schemas.queries import ActiveStatus, Relationship


class GuardianCreate(CamelModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    relationship: Relationship
    phone_number: str
    user_id: Optional[UUID] = None
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    address: Optional[str] = None
    occupation: Optional[str] = None
    work_phone: Optional[str] = None
    emergency_contact: bool = False


class GuardianUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    relationship: Optional[Relationship] = None
    phone_number: Optional[str] = None
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    address: Optional[str] = None
    occupation: Optional[str] = None
    work_phone: Optional[str] = None
    emergency_contact: Optional[bool] = None


class GuardianResponse(CamelModel):
    id: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    relationship: Relationship
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    work_phone: Optional[str] = None
    emergency_contact: bool = False
    status: ActiveStatus = "active"
