from datetime import datetime, timezone


def student_body(**overrides):
    body = {
        "firstName": "Malika",
        "lastName": "Yusupova",
        "dateOfBirth": "2012-05-14",
        "gender": "female",
    }
    body.update(overrides)
    return body


def test_student_sees_only_own_profile(client, school):
    own = client.get(f"/students/{school.student['id']}", headers=school.headers.student)
    assert own.status_code == 200
    assert own.json()["data"]["student"]["studentNumber"] == "STU20250001"

    other = client.get(f"/students/{school.classmate['id']}", headers=school.headers.student)
    assert other.status_code == 403
    assert other.json()["message"] == "Access forbidden - can only view own records"


def test_parent_sees_only_linked_children(client, school):
    assert client.get(f"/students/{school.student['id']}", headers=school.headers.parent).status_code == 200
    assert client.get(f"/students/{school.classmate['id']}", headers=school.headers.parent).status_code == 403
    assert client.get(f"/students/{school.classmate['id']}/grades",
                      headers=school.headers.parent).status_code == 403


def test_listing_closed_to_students_and_parents(client, school):
    assert client.get("/students/", headers=school.headers.student).status_code == 403
    assert client.get("/students/", headers=school.headers.parent).status_code == 403


def test_listing_search_and_sort(client, school):
    response = client.get("/students/?search=tohir", headers=school.headers.teacher_a)
    names = [s["firstName"] for s in response.json()["data"]["students"]]
    assert names == ["Tohir"]

    response = client.get("/students/?sortBy=studentNumber&sortOrder=desc", headers=school.headers.admin)
    numbers = [s["studentNumber"] for s in response.json()["data"]["students"]]
    assert numbers == ["STU20250002", "STU20250001"]


def test_listing_rejects_unknown_status(client, school):
    response = client.get("/students/?status=expelled", headers=school.headers.admin)
    assert response.status_code == 400


def test_create_student_links_guardians(client, school, fake_db):
    response = client.post("/students/", json=student_body(classId=school.class_a["id"],
                                                           guardianIds=[school.guardian["id"]]),
                           headers=school.headers.admin)
    assert response.status_code == 201
    student = response.json()["data"]["student"]
    assert student["studentNumber"] == f"STU{datetime.now(timezone.utc).year}0003"

    links = [l for l in fake_db.rows("student_guardians") if l["student_id"] == student["id"]]
    assert links == [{"student_id": student["id"], "guardian_id": school.guardian["id"], "is_primary": True}]


def test_only_admin_creates_students(client, school):
    assert client.post("/students/", json=student_body(), headers=school.headers.teacher_a).status_code == 403


def test_delete_is_soft(client, school, fake_db):
    response = client.delete(f"/students/{school.classmate['id']}", headers=school.headers.admin)
    assert response.status_code == 200
    row = next(s for s in fake_db.rows("students") if s["id"] == school.classmate["id"])
    assert row["status"] == "withdrawn"


def test_status_update(client, school):
    response = client.patch(f"/students/{school.classmate['id']}/status",
                            json={"status": "graduated"}, headers=school.headers.admin)
    assert response.status_code == 200
    assert response.json()["data"]["student"]["status"] == "graduated"


def test_student_attendance_includes_statistics(client, school, fake_db):
    fake_db.add("attendance", student_id=school.student["id"], class_id=school.class_a["id"],
                teacher_id=school.teacher_a["id"], date="2025-03-10", status="present")
    fake_db.add("attendance", student_id=school.student["id"], class_id=school.class_a["id"],
                teacher_id=school.teacher_a["id"], date="2025-03-11", status="absent")

    response = client.get(f"/students/{school.student['id']}/attendance?limit=1", headers=school.headers.parent)
    data = response.json()["data"]
    assert len(data["attendance"]) == 1
    assert data["statistics"]["total"] == 2
    assert data["statistics"]["attendanceRate"] == 50
    assert data["pagination"]["pages"] == 2


def test_guardian_links(client, school):
    guardians = client.get(f"/students/{school.student['id']}/guardians", headers=school.headers.parent)
    assert guardians.json()["data"]["guardians"][0]["isPrimary"] is True

    link = client.post(f"/students/{school.classmate['id']}/guardians",
                       json={"guardianId": school.guardian["id"], "relationship": "guardian"},
                       headers=school.headers.admin)
    assert link.status_code == 201
    duplicate = client.post(f"/students/{school.classmate['id']}/guardians",
                            json={"guardianId": school.guardian["id"]}, headers=school.headers.admin)
    assert duplicate.status_code == 409

    unlink = client.delete(f"/students/{school.classmate['id']}/guardians/{school.guardian['id']}",
                           headers=school.headers.admin)
    assert unlink.status_code == 200


def test_listing_by_grade_level(client, school):
    seventh = client.get("/students/?grade=7", headers=school.headers.admin).json()["data"]
    assert seventh["pagination"]["total"] == 2
    eighth = client.get("/students/?grade=8", headers=school.headers.admin).json()["data"]
    assert eighth["students"] == []
