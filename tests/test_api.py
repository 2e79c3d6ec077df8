from datetime import timedelta

import pytest
from fastapi import WebSocketDisconnect

from conftest import END, NOW, START
from examportal.utils import to_iso

PASSWORD = "secret123"
OPTIONS = {"A": "Stack", "B": "Queue", "C": "Heap", "D": "Tree"}


def login(client, identifier, password=PASSWORD):
    response = client.post("/api/auth/login", json={"identifier": identifier, "password": password})
    assert response.status_code == 200, response.text
    # Authenticate with the bearer token only, so several roles can share one client
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['session_token']}"}


def register_admin(client, email="admin@school.edu", headers=None):
    return client.post("/api/auth/admin/register", headers=headers or {}, json={
        "name": "Principal",
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    })


def exam_payload(subject_id, start=START, end=END, **overrides):
    payload = {
        "title": "Data Structures Midterm",
        "subject_id": subject_id,
        "branch": "CSE",
        "start_time": to_iso(start),
        "end_time": to_iso(end),
        "duration": 30,
        "questions": [
            {"text": "LIFO structure?", "options": OPTIONS, "correct_answer": "A"},
            {"text": "Priority structure?", "options": OPTIONS, "correct_answer": "C"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def portal(client):
    """Admin, one teacher, one CSE student and a subject, with their auth headers."""
    assert register_admin(client).status_code == 200
    admin = login(client, "admin@school.edu")

    client.post("/api/branches", headers=admin, json={"name": "CSE"})
    response = client.post("/api/teachers", headers=admin, json={
        "name": "Ravi Kumar", "email": "ravi@school.edu", "password": PASSWORD
    })
    assert response.status_code == 200, response.text
    teacher_id = response.json()["id"]
    teacher = login(client, "ravi@school.edu")

    subject = client.post("/api/subjects", headers=teacher, json={
        "name": "Data Structures", "code": "CS201", "semester": "3"
    }).json()
    response = client.post("/api/students", headers=teacher, json={
        "name": "Asha Rao",
        "registration_number": "21BCE1001",
        "password": PASSWORD,
        "branch": "CSE",
        "semester": "3",
    })
    assert response.status_code == 200, response.text
    student = login(client, "21BCE1001")

    return {
        "admin": admin,
        "teacher": teacher,
        "teacher_id": teacher_id,
        "student": student,
        "subject_id": subject["id"],
    }


def create_exam(client, portal, **overrides):
    response = client.post("/api/exams", headers=portal["teacher"],
                           json=exam_payload(portal["subject_id"], **overrides))
    assert response.status_code == 200, response.text
    return response.json()["exam_id"]


# ============ AUTH ============

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_admin_registration_closes_after_first_admin(client):
    assert register_admin(client).status_code == 200
    assert register_admin(client, email="other@school.edu").status_code == 403

    admin = login(client, "admin@school.edu")
    assert register_admin(client, email="deputy@school.edu", headers=admin).status_code == 200


def test_admin_registration_password_mismatch(client):
    response = client.post("/api/auth/admin/register", json={
        "name": "Principal",
        "email": "admin@school.edu",
        "password": PASSWORD,
        "confirm_password": "different",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Passwords do not match"


def test_login_failure_is_generic(client):
    register_admin(client)
    wrong = client.post("/api/auth/login", json={"identifier": "admin@school.edu", "password": "nope123"})
    unknown = client.post("/api/auth/login", json={"identifier": "who@school.edu", "password": PASSWORD})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["detail"] == unknown.json()["detail"] == "Invalid credentials. Please try again."


def test_me_and_logout(client, portal):
    response = client.get("/api/auth/me", headers=portal["teacher"])
    assert response.json()["role"] == "teacher"

    assert client.post("/api/auth/logout", headers=portal["teacher"]).status_code == 200
    assert client.get("/api/auth/me", headers=portal["teacher"]).status_code == 401


# ============ ROLE GATES ============

def test_role_gates(client, portal):
    assert client.get("/api/branches").status_code == 401
    assert client.post("/api/branches", headers=portal["teacher"], json={"name": "ECE"}).status_code == 403
    assert client.get("/api/teachers", headers=portal["teacher"]).status_code == 403
    assert client.get("/api/students", headers=portal["student"]).status_code == 403
    assert client.post("/api/exams/any/session", headers=portal["teacher"]).status_code == 403


def test_deleted_teacher_loses_access(client, portal):
    response = client.delete(f"/api/teachers/{portal['teacher_id']}", headers=portal["admin"])
    assert response.status_code == 200

    assert client.get("/api/dashboard", headers=portal["teacher"]).status_code == 403
    assert client.get("/api/subjects", headers=portal["teacher"]).status_code == 403


# ============ DIRECTORY ============

def test_directory_listings(client, portal):
    branches = client.get("/api/branches", headers=portal["teacher"]).json()
    assert [b["name"] for b in branches] == ["CSE"]

    teachers = client.get("/api/teachers", headers=portal["admin"]).json()
    assert teachers[0]["email"] == "ravi@school.edu"

    students = client.get("/api/students", headers=portal["teacher"]).json()
    assert students[0]["registrationNumber"] == "21BCE1001"


def test_duplicate_registration_number(client, portal):
    response = client.post("/api/students", headers=portal["teacher"], json={
        "name": "Someone Else", "registration_number": "21BCE1001", "password": PASSWORD
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "A student with this registration number already exists."


def test_delete_student(client, portal):
    student_id = client.get("/api/students", headers=portal["teacher"]).json()[0]["id"]
    assert client.delete(f"/api/students/{student_id}", headers=portal["teacher"]).status_code == 200
    assert client.delete(f"/api/students/{student_id}", headers=portal["teacher"]).status_code == 404
    assert client.get("/api/dashboard", headers=portal["student"]).status_code == 403


# ============ EXAMS ============

def test_exam_validation_error(client, portal):
    response = client.post("/api/exams", headers=portal["teacher"],
                           json=exam_payload(portal["subject_id"], end=START))
    assert response.status_code == 400
    assert response.json()["detail"] == "End time must be after start time"
    assert client.get("/api/exams", headers=portal["teacher"]).json() == []


def test_exam_listing_and_delete(client, portal):
    exam_id = create_exam(client, portal)
    exams = client.get("/api/exams", headers=portal["teacher"]).json()
    assert [e["id"] for e in exams] == [exam_id]
    assert exams[0]["totalQuestions"] == 2

    exam = client.get(f"/api/exams/{exam_id}", headers=portal["teacher"]).json()
    assert exam["subject"] == "Data Structures"

    assert client.delete(f"/api/exams/{exam_id}", headers=portal["admin"]).status_code == 200
    assert client.get(f"/api/exams/{exam_id}", headers=portal["teacher"]).status_code == 404


# ============ ATTEMPTS ============

def test_full_attempt(client, portal):
    exam_id = create_exam(client, portal)
    student = portal["student"]

    dashboard = client.get("/api/dashboard", headers=student).json()
    assert dashboard["role"] == "student"
    assert dashboard["available"] == 1

    view = client.post(f"/api/exams/{exam_id}/session", headers=student).json()
    assert view["state"] == "terms_gate"
    assert view["timeLeft"] == 30 * 60
    assert view["questions"] == []

    view = client.post(f"/api/exams/{exam_id}/session/start", headers=student).json()
    assert view["state"] == "in_progress"
    assert [q["id"] for q in view["questions"]] == ["1", "2"]
    assert all(q["correctAnswer"] is None for q in view["questions"])

    client.put(f"/api/exams/{exam_id}/session/answers", headers=student,
               json={"question_id": "1", "option": "A"})
    client.post(f"/api/exams/{exam_id}/session/navigate", headers=student, json={"direction": "next"})
    view = client.put(f"/api/exams/{exam_id}/session/answers", headers=student,
                      json={"question_id": "2", "option": "B"}).json()
    assert view["currentIndex"] == 1
    assert view["answers"] == {"1": "A", "2": "B"}

    view = client.post(f"/api/exams/{exam_id}/session/submit", headers=student).json()
    assert view["state"] == "completed"
    assert view["score"] == 50
    review = {item["questionId"]: item for item in view["review"]}
    assert review["1"]["status"] == "correct"
    assert review["2"]["status"] == "incorrect"
    assert review["2"]["correctAnswer"] == "C"

    # A second submit is absorbed
    again = client.post(f"/api/exams/{exam_id}/session/submit", headers=student)
    assert again.status_code == 200
    assert again.json()["score"] == 50

    # The finished attempt is released but still viewable
    assert len(client.app.state.portal.attempts) == 0
    view = client.get(f"/api/exams/{exam_id}/session", headers=student).json()
    assert view["state"] == "completed"
    assert view["score"] == 50

    results = client.get(f"/api/exams/{exam_id}/results", headers=portal["teacher"]).json()
    assert len(results) == 1
    assert results[0]["registration_number"] == "21BCE1001"
    assert results[0]["answers"] == {"1": "A", "2": "B"}

    # Re-entry shows the stored result
    view = client.post(f"/api/exams/{exam_id}/session", headers=student).json()
    assert view["state"] == "completed"
    assert view["notice"] == "AlreadyCompleted"
    assert view["score"] == 50

    dashboard = client.get("/api/dashboard", headers=student).json()
    assert dashboard["completed"] == 1
    assert dashboard["exams"][0]["score"] == 50


def test_attempt_errors(client, portal):
    exam_id = create_exam(client, portal)
    student = portal["student"]

    assert client.get(f"/api/exams/{exam_id}/session", headers=student).status_code == 404

    client.post(f"/api/exams/{exam_id}/session", headers=student)
    early = client.put(f"/api/exams/{exam_id}/session/answers", headers=student,
                       json={"question_id": "1", "option": "A"})
    assert early.status_code == 409

    client.post(f"/api/exams/{exam_id}/session/start", headers=student)
    bad = client.put(f"/api/exams/{exam_id}/session/answers", headers=student,
                     json={"question_id": "1", "option": "Z"})
    assert bad.status_code == 400

    assert client.post(f"/api/exams/{exam_id}/session/retry", headers=student).status_code == 409
    assert client.delete(f"/api/exams/{exam_id}/session", headers=student).status_code == 200
    assert client.get(f"/api/exams/{exam_id}/session", headers=student).status_code == 404


def test_blocked_attempts(client, portal):
    student = portal["student"]
    later = create_exam(client, portal, start=NOW + timedelta(days=1), end=NOW + timedelta(days=2))
    over = create_exam(client, portal, start=NOW - timedelta(days=2), end=NOW - timedelta(days=1))

    response = client.post(f"/api/exams/{later}/session", headers=student)
    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "ExamNotYetOpen"

    response = client.post(f"/api/exams/{over}/session", headers=student)
    assert response.status_code == 403
    assert response.json()["detail"]["reason"] == "ExamClosed"

    response = client.post("/api/exams/exam_missing/session", headers=student)
    assert response.status_code == 404
    assert response.json()["detail"]["reason"] == "ExamNotFound"

    dashboard = client.get("/api/dashboard", headers=student).json()
    assert dashboard["upcoming"] == 1
    assert [card["id"] for card in dashboard["exams"]] == [later]


def test_exams_for_other_branches_are_hidden(client, portal):
    create_exam(client, portal, branch="ECE")
    dashboard = client.get("/api/dashboard", headers=portal["student"]).json()
    assert dashboard["exams"] == []


# ============ DASHBOARDS ============

def test_staff_dashboards(client, portal):
    create_exam(client, portal)

    admin = client.get("/api/dashboard", headers=portal["admin"]).json()
    assert admin["role"] == "admin"
    assert [t["name"] for t in admin["teachers"]] == ["Ravi Kumar"]

    teacher = client.get("/api/dashboard", headers=portal["teacher"]).json()
    assert teacher["role"] == "teacher"
    assert len(teacher["students"]) == 1
    assert len(teacher["exams"]) == 1


def test_dashboard_requires_login(client):
    assert client.get("/api/dashboard").status_code == 401


# ============ LIVE ============

def test_live_branches_for_admin(client, portal):
    token = portal["admin"]["Authorization"].split(" ", 1)[1]
    with client.websocket_connect(f"/api/live/branches?token={token}") as websocket:
        first = websocket.receive_json()
        assert first["collection"] == "branches"
        assert [b["name"] for b in first["data"].values()] == ["CSE"]

        client.post("/api/branches", headers=portal["admin"], json={"name": "ECE"})
        second = websocket.receive_json()
        assert sorted(b["name"] for b in second["data"].values()) == ["CSE", "ECE"]


def test_live_refuses_other_collections(client, portal):
    token = portal["teacher"]["Authorization"].split(" ", 1)[1]
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/api/live/users?token={token}") as websocket:
            websocket.receive_json()
    assert exc_info.value.code == 4403
