def create_teacher(client, name="Alice"):
    response = client.post(
        "/api/teachers/",
        json={"name": name, "rank": "assistant", "department": "CSE", "max_workload": 10},
    )
    assert response.status_code == 201
    return response.json()


def subject_payload(**overrides):
    payload = {
        "name": "Operating Systems",
        "code": "cs301",
        "credits": 4,
        "type": "theory",
        "semester": 5,
        "department": "CSE",
        "teacher_ids": [],
    }
    payload.update(overrides)
    return payload


def test_subject_crud(client):
    teacher = create_teacher(client)
    created = client.post("/api/subjects/", json=subject_payload(teacher_ids=[teacher["id"], teacher["id"]]))
    assert created.status_code == 201
    body = created.json()
    assert body["code"] == "CS301"
    assert body["teacher_ids"] == [teacher["id"]]

    updated = client.put(f"/api/subjects/{body['id']}", json={"credits": 2, "type": "lab"})
    assert updated.status_code == 200
    assert updated.json()["credits"] == 2
    assert updated.json()["type"] == "lab"
    assert updated.json()["name"] == "Operating Systems"

    assert client.get(f"/api/subjects/{body['id']}").json()["type"] == "lab"

    deleted = client.delete(f"/api/subjects/{body['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["referencing_timetable_ids"] == []
    assert client.get(f"/api/subjects/{body['id']}").status_code == 404


def test_unknown_eligible_teacher_is_rejected(client):
    response = client.post("/api/subjects/", json=subject_payload(teacher_ids=["ghost"]))
    assert response.status_code == 404
    assert response.json()["message"] == "Teacher with id ghost not found"


def test_duplicate_code_in_the_same_semester_conflicts(client):
    assert client.post("/api/subjects/", json=subject_payload()).status_code == 201

    duplicate = client.post("/api/subjects/", json=subject_payload(name="Another"))
    assert duplicate.status_code == 409

    other_semester = client.post("/api/subjects/", json=subject_payload(semester=6))
    assert other_semester.status_code == 201


def test_list_by_semester(client):
    client.post("/api/subjects/", json=subject_payload(code="CS301", semester=5))
    client.post("/api/subjects/", json=subject_payload(code="CS302", semester=5, department="ECE"))
    client.post("/api/subjects/", json=subject_payload(code="CS401", semester=7))

    semester_five = client.get("/api/subjects/semester/5")
    assert semester_five.status_code == 200
    assert [item["code"] for item in semester_five.json()] == ["CS301", "CS302"]

    filtered = client.get("/api/subjects/semester/5", params={"department": "ECE"})
    assert [item["code"] for item in filtered.json()] == ["CS302"]


def test_invalid_credits_are_rejected(client):
    response = client.post("/api/subjects/", json=subject_payload(credits=0))
    assert response.status_code == 422
