"""
Supabase-backed domain store.

Thin helpers around the PostgREST query builder: running a ``QuerySpec``,
single-row reads and writes with PostgREST error translation, and the
ownership lookups the authorization policy needs.
"""
import logging
import re
from contextlib import contextmanager
from typing import Any, Iterable, Optional

from postgrest.exceptions import APIError
from supabase import Client

from edusmart.core.errors import (
    ConflictError,
    InvalidReferenceError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from edusmart.core.policy import (
    Caller,
    GuardianProfile,
    Role,
    StudentProfile,
    TeacherProfile,
)
from edusmart.core.query import Between, Eq, OneOf, QuerySpec

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INVALID_TEXT = "22P02"

# PostgREST uses these as separators inside or=(...)
_SEARCH_UNSAFE = re.compile(r"[,()%*\\]")


@contextmanager
def translate_errors():
    """Map PostgREST failures onto the API error taxonomy."""
    try:
        yield
    except APIError as exc:
        code = getattr(exc, "code", None)
        if code == UNIQUE_VIOLATION:
            logger.info("Unique constraint violated: %s", exc.message)
            raise ConflictError(extra={"field": _conflicting_field(exc)}) from exc
        if code == FOREIGN_KEY_VIOLATION:
            logger.info("Foreign key violated: %s", exc.message)
            raise InvalidReferenceError() from exc
        if code == INVALID_TEXT:
            raise ValidationError(exc.message or "Invalid value") from exc
        logger.error("Supabase error %s: %s", code, exc.message)
        raise UnexpectedError("Database error") from exc


def _conflicting_field(exc: APIError) -> Optional[str]:
    match = re.search(r"Key \((?P<field>[^)]+)\)", exc.details or "")
    return match.group("field") if match else None


# -------------------------
# QUERY SPECS
# -------------------------
def apply_spec(query, spec: QuerySpec, *, paginate: bool = True):
    for column, condition in spec.filters.items():
        if isinstance(condition, Eq):
            query = query.eq(column, condition.value)
        elif isinstance(condition, Between):
            if condition.start is not None:
                query = query.gte(column, condition.start)
            if condition.end is not None:
                query = query.lte(column, condition.end)
        elif isinstance(condition, OneOf):
            query = query.in_(column, list(condition.values))

    if spec.search is not None:
        term = _SEARCH_UNSAFE.sub("", spec.search.term)
        if term:
            query = query.or_(",".join(f"{column}.ilike.%{term}%" for column in spec.search.columns))

    for order in spec.order:
        query = query.order(order.column, desc=order.descending)

    if paginate and spec.page is not None:
        start = spec.page.offset
        query = query.range(start, start + spec.page.limit - 1)
    return query


def fetch_page(db: Client, table: str, spec: QuerySpec, columns: str = "*") -> tuple[list, int]:
    """Rows for the requested page plus the total match count."""
    if spec.is_empty_result:
        return [], 0
    with translate_errors():
        response = apply_spec(db.table(table).select(columns, count="exact"), spec).execute()
    total = response.count if response.count is not None else len(response.data)
    return response.data, total


def fetch_all(db: Client, table: str, spec: Optional[QuerySpec] = None, columns: str = "*") -> list:
    spec = spec or QuerySpec()
    if spec.is_empty_result:
        return []
    with translate_errors():
        response = apply_spec(db.table(table).select(columns), spec, paginate=False).execute()
    return response.data


def select_where(db: Client, table: str, columns: str = "*", **equals: Any) -> list:
    return fetch_all(db, table, QuerySpec(filters={k: Eq(v) for k, v in equals.items()}), columns)


def select_in(db: Client, table: str, column: str, values: Iterable[Any], columns: str = "*") -> list:
    values = tuple(values)
    if not values:
        return []
    return fetch_all(db, table, QuerySpec(filters={column: OneOf(values)}), columns)


def count_where(db: Client, table: str, **equals: Any) -> int:
    with translate_errors():
        query = db.table(table).select("id", count="exact")
        for column, value in equals.items():
            query = query.eq(column, value)
        response = query.execute()
    return response.count if response.count is not None else len(response.data)


# -------------------------
# SINGLE ROWS
# -------------------------
def get_by_id(db: Client, table: str, row_id: str, columns: str = "*") -> Optional[dict]:
    rows = select_where(db, table, columns, id=str(row_id))
    return rows[0] if rows else None


def get_or_404(db: Client, table: str, row_id: str, message: str, message_uz: str) -> dict:
    row = get_by_id(db, table, row_id)
    if row is None:
        raise NotFoundError(message, message_uz)
    return row


def insert_row(db: Client, table: str, data: dict) -> dict:
    with translate_errors():
        response = db.table(table).insert(data).execute()
    return response.data[0]


def update_row(db: Client, table: str, row_id: str, data: dict) -> dict:
    with translate_errors():
        response = db.table(table).update(data).eq("id", str(row_id)).execute()
    if not response.data:
        raise NotFoundError()
    return response.data[0]


def delete_where(db: Client, table: str, **equals: Any) -> None:
    """Only used for link tables; entity rows are never deleted."""
    with translate_errors():
        query = db.table(table).delete()
        for column, value in equals.items():
            query = query.eq(column, value)
        query.execute()


# -------------------------
# OWNERSHIP LOOKUPS
# -------------------------
def guardian_student_ids(db: Client, guardian_id: str) -> frozenset:
    rows = select_where(db, "student_guardians", "student_id", guardian_id=guardian_id)
    return frozenset(row["student_id"] for row in rows)


def teacher_class_ids(db: Client, teacher_id: str) -> frozenset:
    assigned = select_where(db, "class_teachers", "class_id", teacher_id=teacher_id)
    homeroom = select_where(db, "classes", "id", class_teacher_id=teacher_id)
    return frozenset([row["class_id"] for row in assigned] + [row["id"] for row in homeroom])


def teacher_subject_ids(db: Client, teacher_id: str) -> frozenset:
    rows = select_where(db, "teacher_subjects", "subject_id", teacher_id=teacher_id)
    return frozenset(row["subject_id"] for row in rows)


def load_profile(db: Client, role: Role, user_id: str):
    """Select the owned profile by role; admins own none."""
    if role is Role.STUDENT:
        rows = select_where(db, "students", "id, class_id", user_id=user_id)
        return StudentProfile(rows[0]["id"], rows[0].get("class_id")) if rows else None
    if role is Role.TEACHER:
        rows = select_where(db, "teachers", "id", user_id=user_id)
        if not rows:
            return None
        teacher_id = rows[0]["id"]
        return TeacherProfile(
            teacher_id,
            class_ids=teacher_class_ids(db, teacher_id),
            subject_ids=teacher_subject_ids(db, teacher_id),
        )
    if role is Role.PARENT:
        rows = select_where(db, "guardians", "id", user_id=user_id)
        if not rows:
            return None
        return GuardianProfile(rows[0]["id"], student_ids=guardian_student_ids(db, rows[0]["id"]))
    return None


def load_caller(db: Client, user: dict) -> Caller:
    role = Role(user["role"])
    return Caller(
        user_id=user["id"],
        role=role,
        is_active=bool(user.get("is_active", True)),
        profile=load_profile(db, role, user["id"]),
    )


def next_sequence_number(db: Client, table: str, prefix: str, width: int, year: int) -> str:
    """``{prefix}{year}{n:0width}`` where n is one past the current row count."""
    sequence = count_where(db, table) + 1
    return f"{prefix}{year}{sequence:0{width}d}"
