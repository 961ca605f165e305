"""
Query composition: raw query-string parameters in, a typed ``QuerySpec`` out.

Validation happens first (pydantic models in ``edusmart.schemas.queries``);
role-forced narrowing is applied afterwards and always overrides what the
caller sent. The resulting spec is run against Supabase by
``edusmart.db.store.apply_spec``.
"""
import math
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from edusmart.core.errors import AuthorizationError, ValidationError
from edusmart.core.policy import Caller, GuardianProfile, Role, StudentProfile, TeacherProfile
from edusmart.schemas import queries


# -------------------------
# SPEC TYPES
# -------------------------
@dataclass(frozen=True)
class Eq:
    value: Any


@dataclass(frozen=True)
class Between:
    """Inclusive range; either bound may be open."""
    start: Any = None
    end: Any = None


@dataclass(frozen=True)
class OneOf:
    values: tuple


Condition = Union[Eq, Between, OneOf]


@dataclass(frozen=True)
class Search:
    term: str
    columns: tuple


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False


@dataclass(frozen=True)
class Page:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class QuerySpec:
    filters: dict = field(default_factory=dict)
    order: tuple = ()
    page: Optional[Page] = None
    search: Optional[Search] = None

    @property
    def is_empty_result(self) -> bool:
        """True when a filter can match nothing (e.g. a parent with no linked children)."""
        return any(isinstance(c, OneOf) and not c.values for c in self.filters.values())


# -------------------------
# PER-ENTITY RULES
# -------------------------
@dataclass(frozen=True)
class ListingRules:
    params: Type[BaseModel]
    equality: dict                     # param field -> column
    default_order: tuple
    sortable: dict = field(default_factory=dict)   # sortBy value -> column
    search_columns: tuple = ()
    date_column: Optional[str] = None
    record_scoped: bool = False        # grades / attendance: narrowed per role


LISTINGS = {
    "students": ListingRules(
        params=queries.StudentListParams,
        equality={"class_id": "class_id", "status": "status"},
        default_order=(OrderBy("first_name"), OrderBy("last_name")),
        sortable={
            "firstName": "first_name",
            "lastName": "last_name",
            "studentNumber": "student_number",
            "enrollmentDate": "enrollment_date",
        },
        search_columns=("first_name", "last_name", "student_number"),
    ),
    "teachers": ListingRules(
        params=queries.TeacherListParams,
        equality={"status": "status"},
        default_order=(OrderBy("first_name"), OrderBy("last_name")),
        sortable={
            "firstName": "first_name",
            "lastName": "last_name",
            "employeeNumber": "employee_number",
            "hireDate": "hire_date",
        },
        search_columns=("first_name", "last_name", "employee_number"),
    ),
    "guardians": ListingRules(
        params=queries.GuardianListParams,
        equality={"relationship": "relationship", "status": "status"},
        default_order=(OrderBy("last_name"), OrderBy("first_name")),
        search_columns=("first_name", "last_name", "phone_number"),
    ),
    "classes": ListingRules(
        params=queries.ClassListParams,
        equality={"grade": "grade", "academic_year": "academic_year", "status": "status"},
        default_order=(OrderBy("grade"), OrderBy("section")),
        sortable={"name": "name", "grade": "grade", "section": "section"},
    ),
    "subjects": ListingRules(
        params=queries.SubjectListParams,
        equality={"grade": "grade", "status": "status"},
        default_order=(OrderBy("name"),),
        sortable={"name": "name", "code": "code", "grade": "grade"},
        search_columns=("name", "name_uz", "code"),
    ),
    "grades": ListingRules(
        params=queries.GradeListParams,
        equality={
            "student_id": "student_id",
            "subject_id": "subject_id",
            "class_id": "class_id",
            "semester": "semester",
            "academic_year": "academic_year",
            "grade_type": "grade_type",
        },
        default_order=(OrderBy("grade_date", descending=True),),
        date_column="grade_date",
        record_scoped=True,
    ),
    "attendance": ListingRules(
        params=queries.AttendanceListParams,
        equality={
            "student_id": "student_id",
            "class_id": "class_id",
            "subject_id": "subject_id",
            "status": "status",
        },
        default_order=(OrderBy("date", descending=True), OrderBy("time_in")),
        date_column="date",
        record_scoped=True,
    ),
}


# -------------------------
# VALIDATION
# -------------------------
def validate_params(model: Type[BaseModel], params: Mapping[str, Any]) -> BaseModel:
    """Validate raw parameters, reporting the first problem like a 400."""
    try:
        return model.model_validate(dict(params))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "__root__")
        message = f"{location}: {first['msg']}" if location else first["msg"]
        raise ValidationError(
            message,
            "So'rov parametrlarida xatolik",
            extra={"errors": [_error_entry(e) for e in exc.errors()]},
        ) from exc


def _error_entry(error: Mapping) -> dict:
    return {
        "field": ".".join(str(part) for part in error.get("loc", ())),
        "message": error.get("msg"),
    }


def _filter_value(value: Any) -> Any:
    return str(value) if value is not None and not isinstance(value, (int, str)) else value


def filters_from(params: BaseModel, equality: Mapping[str, str], date_column: Optional[str] = None) -> dict:
    filters = {}
    for name, column in equality.items():
        value = getattr(params, name, None)
        if value is not None:
            filters[column] = Eq(_filter_value(value))

    if date_column:
        exact = getattr(params, "date", None)
        start = getattr(params, "start_date", None)
        end = getattr(params, "end_date", None)
        if exact is not None:
            filters[date_column] = Eq(exact.isoformat())
        elif start is not None or end is not None:
            filters[date_column] = Between(
                start.isoformat() if start else None,
                end.isoformat() if end else None,
            )
    return filters


# -------------------------
# ROLE NARROWING
# -------------------------
def narrow_filter(caller: Caller, filters: Mapping[str, Condition], *, teacher_scoped: bool = True) -> dict:
    """
    Force record-level listings down to what the caller may see.

    Students always get their own ``student_id``; teachers get their own
    ``teacher_id`` on "my records" listings; parents get the intersection
    of what they asked for with their linked children (possibly empty).
    """
    effective = dict(filters)

    if caller.role is Role.STUDENT:
        if not isinstance(caller.profile, StudentProfile):
            raise AuthorizationError("Student profile not found", "Talaba profili topilmadi")
        effective["student_id"] = Eq(caller.profile.id)

    elif caller.role is Role.TEACHER and teacher_scoped:
        if not isinstance(caller.profile, TeacherProfile):
            raise AuthorizationError("Teacher profile not found", "O'qituvchi profili topilmadi")
        effective["teacher_id"] = Eq(caller.profile.id)

    elif caller.role is Role.PARENT:
        if not isinstance(caller.profile, GuardianProfile):
            raise AuthorizationError("Guardian profile not found", "Vasiy profili topilmadi")
        children = caller.profile.student_ids
        requested = effective.get("student_id")
        if isinstance(requested, Eq):
            allowed = tuple(sorted({requested.value} & children))
        else:
            allowed = tuple(sorted(children))
        effective["student_id"] = OneOf(allowed)

    return effective


# -------------------------
# COMPOSITION
# -------------------------
def compose(entity: str, params: Mapping[str, Any], caller: Optional[Caller] = None,
            *, teacher_scoped: bool = True) -> QuerySpec:
    """Build the filter/order/page spec for a listing endpoint."""
    rules = LISTINGS[entity]
    parsed = validate_params(rules.params, params)

    filters = filters_from(parsed, rules.equality, rules.date_column)
    if rules.record_scoped and caller is not None:
        filters = narrow_filter(caller, filters, teacher_scoped=teacher_scoped)

    search = None
    term = getattr(parsed, "search", None)
    if term and rules.search_columns:
        search = Search(term.strip(), rules.search_columns)

    return QuerySpec(
        filters=filters,
        order=_ordering(parsed, rules),
        page=Page(parsed.page, parsed.limit),
        search=search,
    )


def _ordering(parsed: BaseModel, rules: ListingRules) -> tuple:
    sort_by = getattr(parsed, "sort_by", None)
    if sort_by is None:
        return rules.default_order
    descending = getattr(parsed, "sort_order", "asc") == "desc"
    return (OrderBy(rules.sortable[sort_by], descending),)


def compose_filters(model: Type[BaseModel], params: Mapping[str, Any], equality: Mapping[str, str],
                    date_column: Optional[str] = None) -> tuple[BaseModel, QuerySpec]:
    """Unpaginated variant used by statistics and report endpoints."""
    parsed = validate_params(model, params)
    return parsed, QuerySpec(filters=filters_from(parsed, equality, date_column))


def with_filters(spec: QuerySpec, **conditions: Condition) -> QuerySpec:
    return replace(spec, filters={**spec.filters, **conditions})


# -------------------------
# PAGINATION
# -------------------------
def paginate(page: int = 1, limit: int = 10, total: int = 0) -> dict:
    page = max(1, int(page))
    limit = max(1, min(100, int(limit)))
    offset = (page - 1) * limit
    total_pages = math.ceil(total / limit)
    return {
        "page": page,
        "limit": limit,
        "offset": offset,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
        "startIndex": offset + 1 if total else 0,
        "endIndex": min(offset + limit, total),
    }


def pagination_meta(spec: QuerySpec, total: int) -> dict:
    info = paginate(spec.page.page, spec.page.limit, total)
    return {
        "total": info["total"],
        "page": info["page"],
        "pages": info["totalPages"],
        "limit": info["limit"],
    }
