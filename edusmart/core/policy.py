"""
Role-scoped authorization decisions.

``authorize`` is a pure function: everything it needs (the caller's owned
profile, the guardian's linked children, a teacher's class and subject
assignments, the target's owners) is resolved by the store beforehand and
passed in. Routers turn a ``Deny`` into a 403 with ``enforce``.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Union

from edusmart.core.errors import AuthorizationError


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    PARENT = "parent"
    STUDENT = "student"


class Operation(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def is_write(self) -> bool:
        return self is not Operation.READ


class Resource(str, Enum):
    USER = "user"
    STUDENT = "student"
    TEACHER = "teacher"
    GUARDIAN = "guardian"
    CLASS = "class"
    SUBJECT = "subject"
    GRADE = "grade"
    ATTENDANCE = "attendance"
    REPORT = "report"


# -------------------------
# OWNED PROFILES
# -------------------------
@dataclass(frozen=True)
class StudentProfile:
    id: str
    class_id: Optional[str] = None


@dataclass(frozen=True)
class TeacherProfile:
    id: str
    class_ids: FrozenSet[str] = frozenset()
    subject_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class GuardianProfile:
    id: str
    student_ids: FrozenSet[str] = frozenset()


Profile = Union[StudentProfile, TeacherProfile, GuardianProfile, None]

PROFILE_TYPES = {
    Role.STUDENT: StudentProfile,
    Role.TEACHER: TeacherProfile,
    Role.PARENT: GuardianProfile,
}


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: Role
    is_active: bool = True
    profile: Profile = None

    def __post_init__(self):
        expected = PROFILE_TYPES.get(self.role)
        if self.profile is not None and not isinstance(self.profile, expected or type(None)):
            raise TypeError(f"{type(self.profile).__name__} does not belong to role {self.role.value}")

    @property
    def profile_id(self) -> Optional[str]:
        return self.profile.id if self.profile is not None else None


@dataclass(frozen=True)
class Target:
    """What is being accessed, reduced to the ids the rules look at."""
    resource: Resource
    id: Optional[str] = None
    student_id: Optional[str] = None
    teacher_id: Optional[str] = None
    guardian_id: Optional[str] = None
    class_id: Optional[str] = None
    subject_id: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    reason_uz: Optional[str] = field(default=None, compare=False)

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str, reason_uz: str = "Kirish taqiqlangan") -> Decision:
    return Decision(False, reason, reason_uz)


# -------------------------
# RULES
# -------------------------
def authorize(caller: Caller, operation: Operation, target: Target) -> Decision:
    if not caller.is_active:
        return deny("Account deactivated", "Hisob faolsizlantirilgan")
    if caller.role is Role.ADMIN:
        return ALLOW
    if caller.role is Role.TEACHER:
        return _authorize_teacher(caller, operation, target)
    if caller.role is Role.STUDENT:
        return _authorize_student(caller, operation, target)
    if caller.role is Role.PARENT:
        return _authorize_parent(caller, operation, target)
    return deny("Unknown role")


def _authorize_teacher(caller: Caller, operation: Operation, target: Target) -> Decision:
    profile = caller.profile
    if not isinstance(profile, TeacherProfile):
        return deny("Teacher profile not found", "O'qituvchi profili topilmadi")

    if target.resource is Resource.TEACHER:
        if target.teacher_id != profile.id:
            return deny("Access forbidden - can only access own teacher profile",
                        "Kirish taqiqlangan - faqat o'z profilingizga kirishingiz mumkin")
        if operation.is_write:
            return deny("Only administrators can modify teacher records")
        return ALLOW

    if target.resource in (Resource.GRADE, Resource.ATTENDANCE):
        if not operation.is_write:
            return ALLOW
        if operation is Operation.CREATE:
            if target.class_id in profile.class_ids or target.subject_id in profile.subject_ids:
                return ALLOW
            return deny("Not assigned to this class or subject",
                        "Siz bu sinf yoki fanga biriktirilmagansiz")
        if target.teacher_id == profile.id:
            return ALLOW
        return deny(f"Not authorized to modify this {target.resource.value}",
                    "Bu yozuvni o'zgartirish uchun ruxsat yo'q")

    if operation.is_write or target.resource is Resource.USER:
        return deny("Insufficient permissions", "Ruxsat etilmagan")
    return ALLOW


def _authorize_student(caller: Caller, operation: Operation, target: Target) -> Decision:
    profile = caller.profile
    if not isinstance(profile, StudentProfile):
        return deny("Student profile not found", "Talaba profili topilmadi")
    if operation.is_write:
        return deny("Students have read-only access", "Talabalar faqat o'qish huquqiga ega")

    if target.resource in (Resource.STUDENT, Resource.GRADE, Resource.ATTENDANCE, Resource.REPORT):
        if target.student_id == profile.id:
            return ALLOW
        return deny("Access forbidden - can only view own records",
                    "Kirish taqiqlangan - faqat o'z ma'lumotlaringizni ko'rishingiz mumkin")
    if target.resource in (Resource.CLASS, Resource.SUBJECT):
        return ALLOW
    return deny("Access forbidden")


def _authorize_parent(caller: Caller, operation: Operation, target: Target) -> Decision:
    profile = caller.profile
    if not isinstance(profile, GuardianProfile):
        return deny("Guardian profile not found", "Vasiy profili topilmadi")
    if operation.is_write:
        return deny("Parents have read-only access", "Ota-onalar faqat o'qish huquqiga ega")

    if target.resource in (Resource.STUDENT, Resource.GRADE, Resource.ATTENDANCE, Resource.REPORT):
        if target.student_id is not None and target.student_id in profile.student_ids:
            return ALLOW
        return deny("Access forbidden - can only view own children's records",
                    "Kirish taqiqlangan - faqat o'z farzandlaringiz ma'lumotlarini ko'rishingiz mumkin")
    if target.resource is Resource.GUARDIAN:
        if target.guardian_id == profile.id:
            return ALLOW
        return deny("Access forbidden - can only view own guardian profile")
    if target.resource in (Resource.CLASS, Resource.SUBJECT):
        return ALLOW
    return deny("Access forbidden")


def enforce(decision: Decision) -> None:
    if not decision.allowed:
        raise AuthorizationError(decision.reason, decision.reason_uz)


def check(caller: Caller, operation: Operation, target: Target) -> None:
    enforce(authorize(caller, operation, target))


def require_role(caller: Caller, *roles: Role) -> None:
    if caller.role not in roles:
        raise AuthorizationError("Insufficient permissions", "Ruxsat etilmagan")
