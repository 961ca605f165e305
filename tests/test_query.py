from uuid import uuid4

import pytest

from edusmart.core.errors import AuthorizationError, ValidationError
from edusmart.core.policy import Caller, GuardianProfile, Role, StudentProfile, TeacherProfile
from edusmart.core.query import (
    Between,
    Eq,
    OneOf,
    OrderBy,
    compose,
    narrow_filter,
    paginate,
)

OWN = str(uuid4())
OTHER = str(uuid4())
CHILD = str(uuid4())

STUDENT = Caller("u-s", Role.STUDENT, profile=StudentProfile(OWN))
TEACHER = Caller("u-t", Role.TEACHER, profile=TeacherProfile("t1"))
PARENT = Caller("u-p", Role.PARENT, profile=GuardianProfile("g1", frozenset({CHILD})))
ADMIN = Caller("u-a", Role.ADMIN)


def test_paginate():
    info = paginate(page=2, limit=10, total=25)
    assert info["offset"] == 10
    assert info["totalPages"] == 3
    assert info["hasNext"] is True
    assert info["hasPrev"] is True
    assert (info["startIndex"], info["endIndex"]) == (11, 20)


def test_paginate_last_page():
    info = paginate(page=3, limit=10, total=25)
    assert info["hasNext"] is False
    assert info["endIndex"] == 25


@pytest.mark.parametrize("requested", [None, OTHER, OWN])
def test_student_filter_always_forced_to_own_id(requested):
    params = {"studentId": requested} if requested else {}
    spec = compose("grades", params, STUDENT)
    assert spec.filters["student_id"] == Eq(OWN)


def test_student_without_profile_is_forbidden():
    with pytest.raises(AuthorizationError):
        narrow_filter(Caller("u-x", Role.STUDENT), {})


def test_teacher_listing_forced_to_own_records():
    spec = compose("attendance", {}, TEACHER)
    assert spec.filters["teacher_id"] == Eq("t1")


def test_teacher_listing_unscoped_when_requested():
    spec = compose("attendance", {}, TEACHER, teacher_scoped=False)
    assert "teacher_id" not in spec.filters


def test_parent_filter_limited_to_children():
    spec = compose("grades", {}, PARENT)
    assert spec.filters["student_id"] == OneOf((CHILD,))
    assert not spec.is_empty_result


def test_parent_asking_for_other_student_gets_nothing():
    spec = compose("grades", {"studentId": OTHER}, PARENT)
    assert spec.filters["student_id"] == OneOf(())
    assert spec.is_empty_result


def test_admin_filters_untouched():
    spec = compose("grades", {"studentId": OTHER, "semester": "2"}, ADMIN)
    assert spec.filters == {"student_id": Eq(OTHER), "semester": Eq(2)}


def test_default_ordering():
    assert compose("grades", {}).order == (OrderBy("grade_date", descending=True),)
    assert compose("attendance", {}).order == (OrderBy("date", descending=True), OrderBy("time_in"))


def test_sort_allow_list():
    spec = compose("students", {"sortBy": "studentNumber", "sortOrder": "desc"})
    assert spec.order == (OrderBy("student_number", descending=True),)
    with pytest.raises(ValidationError):
        compose("students", {"sortBy": "password_hash"})


def test_defaults_differ_per_listing():
    assert compose("students", {}).page.limit == 10
    assert compose("classes", {}).page.limit == 20
    spec = compose("students", {"page": "3", "limit": "5"})
    assert spec.page.offset == 10


def test_search_term_applies_to_search_columns():
    spec = compose("students", {"search": " ali "})
    assert spec.search.term == "ali"
    assert "student_number" in spec.search.columns


def test_open_ended_date_range():
    spec = compose("attendance", {"startDate": "2025-03-01"})
    assert spec.filters["date"] == Between("2025-03-01", None)


def test_exact_date_wins_over_range():
    spec = compose("attendance", {"date": "2025-03-05", "startDate": "2025-03-01"})
    assert spec.filters["date"] == Eq("2025-03-05")


@pytest.mark.parametrize("params", [
    {"page": "0"},
    {"limit": "101"},
    {"limit": "0"},
    {"studentId": "not-a-uuid"},
    {"status": "sick"},
    {"startDate": "2025-03-10", "endDate": "2025-03-01"},
    {"unknown": "1"},
])
def test_invalid_parameters_rejected(params):
    with pytest.raises(ValidationError) as excinfo:
        compose("attendance", params, ADMIN)
    assert excinfo.value.status_code == 400
    assert excinfo.value.extra["errors"]


def test_paginate_empty_result():
    info = paginate(page=1, limit=10, total=0)
    assert info["totalPages"] == 0
    assert info["hasNext"] is False
    assert (info["startIndex"], info["endIndex"]) == (0, 0)
