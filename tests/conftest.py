"""
Shared fixtures: an in-memory stand-in for the Supabase client and a small
seeded school (one admin, two teachers, two students, one parent).
"""
import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")

from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from edusmart.core.security import create_access_token, hash_password
from edusmart.db.supabase import get_supabase
from edusmart.main import app

PASSWORD = "secret123"

UNIQUE = {
    "users": [("email",), ("username",)],
    "attendance": [("student_id", "class_id", "date")],
    "subjects": [("code",)],
    "student_guardians": [("student_id", "guardian_id")],
    "class_teachers": [("class_id", "teacher_id")],
    "teacher_subjects": [("teacher_id", "subject_id")],
}


# -------------------------
# FAKE SUPABASE
# -------------------------
def _same(left, right) -> bool:
    return left == right or (left is not None and str(left) == str(right))


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Just enough of the PostgREST builder for the store helpers."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.count = None
        self.filters = []
        self.orders = []
        self.window = None
        self.max_rows = None

    def select(self, columns="*", count=None):
        self.count = count
        return self

    def insert(self, data):
        self.action, self.payload = "insert", data
        return self

    def update(self, data):
        self.action, self.payload = "update", data
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: _same(row.get(column), value))
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and str(row[column]) >= str(value))
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and str(row[column]) <= str(value))
        return self

    def in_(self, column, values):
        allowed = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in allowed)
        return self

    def or_(self, expression):
        clauses = []
        for part in expression.split(","):
            column, _, pattern = part.split(".", 2)
            clauses.append((column, pattern.strip("%").lower()))
        self.filters.append(
            lambda row: any(term in str(row.get(column) or "").lower() for column, term in clauses)
        )
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def limit(self, size):
        self.max_rows = size
        return self

    def execute(self):
        rows = self.db.tables.setdefault(self.table, [])

        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                self.db.check_unique(self.table, row)
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if all(f(row) for f in self.filters)]

        if self.action == "update":
            for row in matched:
                self.db.check_unique(self.table, {**row, **self.payload}, current=row)
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matched])

        if self.action == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return FakeResponse([dict(row) for row in matched])

        total = len(matched)
        for column, desc in reversed(self.orders):
            matched.sort(key=lambda row: (row.get(column) is None, str(row.get(column) or "")), reverse=desc)
        if self.window is not None:
            matched = matched[self.window[0]:self.window[1] + 1]
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return FakeResponse([dict(row) for row in matched], total if self.count else None)


class FakeSupabase:
    def __init__(self):
        self.tables = {}

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.setdefault(name, [])

    def add(self, table, /, **row):
        row.setdefault("id", str(uuid4()))
        self.rows(table).append(row)
        return row

    def check_unique(self, name, row, current=None):
        for columns in UNIQUE.get(name, []):
            key = tuple(row.get(c) for c in columns)
            if None in key:
                continue
            for other in self.rows(name):
                if other is not current and tuple(other.get(c) for c in columns) == key:
                    raise APIError({
                        "code": "23505",
                        "message": "duplicate key value violates unique constraint",
                        "details": f"Key ({', '.join(columns)})=({', '.join(map(str, key))}) already exists.",
                        "hint": None,
                    })


# -------------------------
# FIXTURES
# -------------------------
@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_supabase] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_user(db, role, username, is_active=True):
    return db.add(
        "users",
        username=username,
        email=f"{username}@school.uz",
        password_hash=hash_password(PASSWORD),
        first_name=username.title(),
        last_name="Test",
        role=role,
        is_active=is_active,
        refresh_token=None,
    )


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user['id'], user['role'])}"}


@pytest.fixture
def school(fake_db):
    db = fake_db
    admin = add_user(db, "admin", "admin")

    teacher_a_user = add_user(db, "teacher", "akmal")
    teacher_b_user = add_user(db, "teacher", "bobur")
    teacher_a = db.add("teachers", user_id=teacher_a_user["id"], employee_number="EMP2025001",
                       first_name="Akmal", last_name="Karimov", status="active")
    teacher_b = db.add("teachers", user_id=teacher_b_user["id"], employee_number="EMP2025002",
                       first_name="Bobur", last_name="Aliyev", status="active")

    class_a = db.add("classes", name="7-A", grade=7, section="A", academic_year="2024-2025",
                     class_teacher_id=None, status="active")
    class_b = db.add("classes", name="8-B", grade=8, section="B", academic_year="2024-2025",
                     class_teacher_id=None, status="active")
    db.add("class_teachers", class_id=class_a["id"], teacher_id=teacher_a["id"])
    db.add("class_teachers", class_id=class_b["id"], teacher_id=teacher_b["id"])

    math = db.add("subjects", name="Mathematics", name_uz="Matematika", code="MATH7", grade=7, status="active")
    db.add("teacher_subjects", teacher_id=teacher_a["id"], subject_id=math["id"])

    student_user = add_user(db, "student", "sardor")
    student = db.add("students", user_id=student_user["id"], student_number="STU20250001", class_id=class_a["id"],
                     first_name="Sardor", last_name="Rahimov", status="active")
    classmate = db.add("students", user_id=None, student_number="STU20250002", class_id=class_a["id"],
                       first_name="Tohir", last_name="Usmonov", status="active")

    parent_user = add_user(db, "parent", "dilnoza")
    guardian = db.add("guardians", user_id=parent_user["id"], first_name="Dilnoza", last_name="Rahimova",
                      relationship="mother", phone_number="+998901234567", status="active")
    db.add("student_guardians", student_id=student["id"], guardian_id=guardian["id"],
           relationship="mother", is_primary=True)

    return SimpleNamespace(
        admin=admin,
        teacher_a=teacher_a,
        teacher_b=teacher_b,
        class_a=class_a,
        class_b=class_b,
        math=math,
        student=student,
        classmate=classmate,
        guardian=guardian,
        student_user=student_user,
        teacher_a_user=teacher_a_user,
        headers=SimpleNamespace(
            admin=auth(admin),
            teacher_a=auth(teacher_a_user),
            teacher_b=auth(teacher_b_user),
            student=auth(student_user),
            parent=auth(parent_user),
        ),
    )


@pytest.fixture
def add_grade(fake_db, school):
    """Insert a grade row directly, defaulting to teacher A, 7-A and mathematics."""
    def _add(student_id, value, teacher=None, **extra):
        row = {
            "student_id": student_id,
            "subject_id": school.math["id"],
            "class_id": school.class_a["id"],
            "teacher_id": (teacher or school.teacher_a)["id"],
            "grade_value": value,
            "grade_type": "exam",
            "semester": 2,
            "academic_year": "2024-2025",
            "weight": 1.0,
            "grade_date": "2025-03-10T09:00:00",
        }
        row.update(extra)
        return fake_db.add("grades", **row)
    return _add
