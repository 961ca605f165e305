from pydantic import Field
from typing import Literal, Optional
from datetime import datetime
from edusmart.schemas.common import CamelModel

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

Role = Literal["admin", "teacher", "parent", "student"]
RegistrationRole = Literal["teacher", "parent", "student"]


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    role: RegistrationRole = "student"


class LoginRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class UserResponse(CamelModel):
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
