from pydantic import Field
from typing import List, Optional
from datetime import date as date_type, datetime, time
from uuid import UUID
from edusmart.schemas.common import CamelModel
from edusmart.schemas.queries import AttendanceStatus


class AttendanceCreate(CamelModel):
    student_id: UUID
    class_id: UUID
    subject_id: Optional[UUID] = None
    teacher_id: Optional[UUID] = None  # set from the caller for teachers
    date: date_type
    status: AttendanceStatus
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    reason: Optional[str] = None
    notes: Optional[str] = None


class AttendanceUpdate(CamelModel):
    status: Optional[AttendanceStatus] = None
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    reason: Optional[str] = None
    notes: Optional[str] = None


class AttendanceBatch(CamelModel):
    # Items are validated one by one so a bad record does not reject the batch
    attendance_records: List[dict] = Field(..., min_length=1, max_length=200)


class AttendanceResponse(CamelModel):
    id: str
    student_id: str
    class_id: str
    subject_id: Optional[str] = None
    teacher_id: str
    date: date_type
    status: AttendanceStatus
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
