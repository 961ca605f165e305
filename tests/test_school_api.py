def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_teacher_reads_only_own_teacher_record(client, school):
    own = client.get(f"/teachers/{school.teacher_a['id']}", headers=school.headers.teacher_a)
    assert own.status_code == 200
    assert own.json()["data"]["teacher"]["employeeNumber"] == "EMP2025001"

    other = client.get(f"/teachers/{school.teacher_b['id']}/classes", headers=school.headers.teacher_a)
    assert other.status_code == 403
    assert client.get(f"/teachers/{school.teacher_b['id']}", headers=school.headers.admin).status_code == 200


def test_teacher_classes_carry_statistics(client, school, fake_db, add_grade):
    add_grade(school.student["id"], 90)
    add_grade(school.classmate["id"], 70)
    fake_db.add("attendance", student_id=school.student["id"], class_id=school.class_a["id"],
                teacher_id=school.teacher_a["id"], date="2025-03-10", status="late")

    response = client.get(f"/teachers/{school.teacher_a['id']}/classes", headers=school.headers.teacher_a)
    classes = response.json()["data"]["classes"]
    assert len(classes) == 1
    assert classes[0]["studentCount"] == 2
    assert classes[0]["averageGrade"] == 80
    assert classes[0]["attendanceRate"] == 100


def test_teacher_soft_delete(client, school, fake_db):
    assert client.delete(f"/teachers/{school.teacher_b['id']}", headers=school.headers.admin).status_code == 200
    row = next(t for t in fake_db.rows("teachers") if t["id"] == school.teacher_b["id"])
    assert row["status"] == "terminated"


def test_subject_codes_are_unique(client, school):
    body = {"name": "Algebra", "code": "math7"}
    response = client.post("/subjects/", json=body, headers=school.headers.admin)
    assert response.status_code == 409
    assert response.json()["field"] == "code"

    created = client.post("/subjects/", json={"name": "Physics", "code": "phys8"}, headers=school.headers.admin)
    assert created.status_code == 201
    assert created.json()["data"]["subject"]["code"] == "PHYS8"


def test_assignment_lets_teacher_grade_class(client, school):
    body = {
        "studentId": school.student["id"],
        "subjectId": school.math["id"],
        "classId": school.class_a["id"],
        "gradeValue": 75,
        "gradeType": "quiz",
        "semester": 1,
        "academicYear": "2024-2025",
    }
    assert client.post("/grades/", json=body, headers=school.headers.teacher_b).status_code == 403

    assigned = client.post(f"/classes/{school.class_a['id']}/teachers",
                           json={"teacherId": school.teacher_b["id"]}, headers=school.headers.admin)
    assert assigned.status_code == 201
    assert client.post("/grades/", json=body, headers=school.headers.teacher_b).status_code == 201


def test_class_listing_filters(client, school):
    response = client.get("/classes/?grade=8", headers=school.headers.student)
    data = response.json()["data"]
    assert [c["name"] for c in data["classes"]] == ["8-B"]
    assert data["pagination"]["limit"] == 20


def test_guardian_profile_visibility(client, school):
    assert client.get(f"/guardians/{school.guardian['id']}", headers=school.headers.parent).status_code == 200
    assert client.get(f"/guardians/{school.guardian['id']}", headers=school.headers.student).status_code == 403
    children = client.get(f"/guardians/{school.guardian['id']}/students", headers=school.headers.parent)
    assert [s["id"] for s in children.json()["data"]["students"]] == [school.student["id"]]


def test_parent_summary(client, school, add_grade):
    add_grade(school.student["id"], 88)
    response = client.get("/reports/parent-summary", headers=school.headers.parent)
    assert response.status_code == 200
    children = response.json()["data"]["children"]
    assert len(children) == 1
    assert children[0]["student"]["id"] == school.student["id"]
    assert children[0]["grades"]["gpa"] == 88

    assert client.get("/reports/parent-summary", headers=school.headers.admin).status_code == 403


def test_dashboard_is_role_shaped(client, school):
    admin = client.get("/reports/dashboard-summary", headers=school.headers.admin).json()["data"]
    assert admin["counts"]["students"] == 2
    teacher = client.get("/reports/dashboard-summary", headers=school.headers.teacher_a).json()["data"]
    assert teacher["counts"]["classes"] == 1
    student = client.get("/reports/dashboard-summary", headers=school.headers.student).json()["data"]
    assert student["student"]["id"] == school.student["id"]


def test_student_performance_access(client, school, add_grade):
    add_grade(school.student["id"], 80, semester=1)
    add_grade(school.student["id"], 90, semester=2)
    own = client.get(f"/reports/student-performance/{school.student['id']}", headers=school.headers.student)
    assert own.status_code == 200
    assert [t["semester"] for t in own.json()["data"]["trend"]] == [1, 2]

    other = client.get(f"/reports/student-performance/{school.classmate['id']}", headers=school.headers.student)
    assert other.status_code == 403


def test_grade_distribution_report(client, school, add_grade):
    for value in (95, 72, 40, 50):
        add_grade(school.student["id"], value)
    response = client.get("/reports/grade-distribution", headers=school.headers.teacher_a)
    rows = {row["level"]: row for row in response.json()["data"]["distribution"]}
    assert rows["unsatisfactory"]["count"] == 2
    assert rows["unsatisfactory"]["percentage"] == 50
    assert rows["excellent"]["description"] == "A'lo"


def test_seeded_rows_accept_name_column(fake_db):
    row = fake_db.add("subjects", name="Physics", code="PHY8")
    assert row["name"] == "Physics"
    assert row["id"]
    assert fake_db.rows("subjects") == [row]
