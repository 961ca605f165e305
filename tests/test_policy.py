import pytest

from edusmart.core.errors import AuthorizationError
from edusmart.core.policy import (
    Caller,
    GuardianProfile,
    Operation,
    Resource,
    Role,
    StudentProfile,
    Target,
    TeacherProfile,
    authorize,
    check,
)

ADMIN = Caller("u-admin", Role.ADMIN)
TEACHER = Caller("u-t1", Role.TEACHER, profile=TeacherProfile("t1", frozenset({"c1"}), frozenset({"math"})))
STUDENT = Caller("u-s1", Role.STUDENT, profile=StudentProfile("s1", "c1"))
PARENT = Caller("u-g1", Role.PARENT, profile=GuardianProfile("g1", frozenset({"s1"})))


@pytest.mark.parametrize("operation", list(Operation))
@pytest.mark.parametrize("resource", list(Resource))
def test_admin_may_do_anything(operation, resource):
    assert authorize(ADMIN, operation, Target(resource, student_id="anyone"))


def test_inactive_caller_is_denied_even_as_admin():
    inactive = Caller("u-admin", Role.ADMIN, is_active=False)
    assert not authorize(inactive, Operation.READ, Target(Resource.CLASS))


def test_student_reads_only_own_records():
    assert authorize(STUDENT, Operation.READ, Target(Resource.STUDENT, student_id="s1"))
    assert authorize(STUDENT, Operation.READ, Target(Resource.GRADE, student_id="s1"))
    decision = authorize(STUDENT, Operation.READ, Target(Resource.GRADE, student_id="s2"))
    assert not decision
    assert decision.reason == "Access forbidden - can only view own records"


@pytest.mark.parametrize("operation", [Operation.CREATE, Operation.UPDATE, Operation.DELETE])
def test_student_cannot_write(operation):
    assert not authorize(STUDENT, operation, Target(Resource.GRADE, student_id="s1"))


def test_student_cannot_read_other_people():
    assert not authorize(STUDENT, Operation.READ, Target(Resource.TEACHER, teacher_id="t1"))
    assert not authorize(STUDENT, Operation.READ, Target(Resource.GUARDIAN, guardian_id="g1"))
    assert authorize(STUDENT, Operation.READ, Target(Resource.CLASS, class_id="c9"))


def test_parent_limited_to_linked_children():
    assert authorize(PARENT, Operation.READ, Target(Resource.STUDENT, student_id="s1"))
    assert authorize(PARENT, Operation.READ, Target(Resource.ATTENDANCE, student_id="s1"))
    assert not authorize(PARENT, Operation.READ, Target(Resource.STUDENT, student_id="s2"))
    assert not authorize(PARENT, Operation.READ, Target(Resource.REPORT, student_id=None))


def test_parent_sees_only_own_guardian_profile():
    assert authorize(PARENT, Operation.READ, Target(Resource.GUARDIAN, guardian_id="g1"))
    assert not authorize(PARENT, Operation.READ, Target(Resource.GUARDIAN, guardian_id="g2"))


def test_parent_is_read_only():
    assert not authorize(PARENT, Operation.UPDATE, Target(Resource.STUDENT, student_id="s1"))


def test_teacher_own_profile_only():
    assert authorize(TEACHER, Operation.READ, Target(Resource.TEACHER, teacher_id="t1"))
    assert not authorize(TEACHER, Operation.READ, Target(Resource.TEACHER, teacher_id="t2"))
    assert not authorize(TEACHER, Operation.UPDATE, Target(Resource.TEACHER, teacher_id="t1"))


def test_teacher_creates_grades_for_assigned_class_or_subject():
    assert authorize(TEACHER, Operation.CREATE, Target(Resource.GRADE, class_id="c1", subject_id="art"))
    assert authorize(TEACHER, Operation.CREATE, Target(Resource.GRADE, class_id="c2", subject_id="math"))
    assert not authorize(TEACHER, Operation.CREATE, Target(Resource.GRADE, class_id="c2", subject_id="art"))


def test_teacher_updates_only_authored_records():
    assert authorize(TEACHER, Operation.UPDATE, Target(Resource.GRADE, teacher_id="t1", class_id="c1"))
    assert not authorize(TEACHER, Operation.UPDATE, Target(Resource.GRADE, teacher_id="t2", class_id="c1"))
    assert not authorize(TEACHER, Operation.UPDATE, Target(Resource.ATTENDANCE, teacher_id="t2"))


def test_teacher_reads_but_does_not_manage_school_records():
    assert authorize(TEACHER, Operation.READ, Target(Resource.STUDENT, student_id="s9"))
    assert not authorize(TEACHER, Operation.CREATE, Target(Resource.STUDENT))
    assert not authorize(TEACHER, Operation.READ, Target(Resource.USER, id="u-s1"))


def test_role_without_profile_is_denied():
    orphan = Caller("u-x", Role.STUDENT)
    assert not authorize(orphan, Operation.READ, Target(Resource.STUDENT, student_id=None))


def test_profile_must_match_role():
    with pytest.raises(TypeError):
        Caller("u-x", Role.STUDENT, profile=GuardianProfile("g1"))


def test_check_raises_forbidden():
    with pytest.raises(AuthorizationError) as excinfo:
        check(STUDENT, Operation.READ, Target(Resource.GRADE, student_id="s2"))
    assert excinfo.value.status_code == 403
    assert excinfo.value.to_dict()["success"] is False
