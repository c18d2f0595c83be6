"""Unit tests for exam and registration routes."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from examhub.api.app import register_exception_handlers
from examhub.api.dependencies import get_state_store
from examhub.api.routes import exams
from examhub.state_store import RegistrationStatus, StateStore


@pytest.fixture
def app(store: StateStore) -> FastAPI:
    """Create a test FastAPI app with the in-memory store."""
    app = FastAPI()

    # Override state store dependency
    def override_get_state_store():
        yield store

    app.dependency_overrides[get_state_store] = override_get_state_store
    register_exception_handlers(app)
    app.include_router(exams.router, prefix="/api/v1")

    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def as_professor(user_id: int) -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-User-Role": "professor"}


def as_student(user_id: int) -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-User-Role": "student"}


@pytest.mark.unit
class TestListExams:
    """Tests for GET /courses/{course_id}/exams."""

    def test_list_exams(self, client: TestClient, campus) -> None:
        response = client.get(f"/api/v1/courses/{campus.course.id}/exams")

        assert response.status_code == 200
        data = response.json()
        assert data["error"] is None
        assert len(data["data"]) == 1
        assert data["data"][0]["id"] == campus.exam.id
        assert data["data"][0]["course_name"] == "Algorithms"

    def test_list_exams_empty_course(self, client: TestClient) -> None:
        response = client.get("/api/v1/courses/999/exams")

        assert response.status_code == 200
        assert response.json()["data"] == []


@pytest.mark.unit
class TestAddExamCall:
    """Tests for POST /professor/courses/{course_id}/exams."""

    def test_add_exam_call(self, client: TestClient, campus) -> None:
        """201 with the new exam call."""
        response = client.post(
            f"/api/v1/professor/courses/{campus.course.id}/exams",
            json={"date": "2026-09-10T14:00:00"},
            headers=as_professor(campus.professor.id),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["course_id"] == campus.course.id
        assert data["date"] == "2026-09-10T14:00:00"

    def test_add_exam_call_not_owner(self, client: TestClient, campus) -> None:
        """403 when the caller doesn't teach the course."""
        response = client.post(
            f"/api/v1/professor/courses/{campus.course.id}/exams",
            json={"date": "2026-09-10T14:00:00"},
            headers=as_professor(campus.other_professor.id),
        )

        assert response.status_code == 403
        assert "professor of this course" in response.json()["error"]

    def test_add_exam_call_unknown_course(self, client: TestClient, campus) -> None:
        response = client.post(
            "/api/v1/professor/courses/999/exams",
            json={"date": "2026-09-10T14:00:00"},
            headers=as_professor(campus.professor.id),
        )

        assert response.status_code == 404
        assert "not found" in response.json()["error"].lower()

    def test_add_exam_call_missing_user(self, client: TestClient, campus) -> None:
        """422 without the identity header."""
        response = client.post(
            f"/api/v1/professor/courses/{campus.course.id}/exams",
            json={"date": "2026-09-10T14:00:00"},
        )

        assert response.status_code == 422

    def test_add_exam_call_missing_role(self, client: TestClient, campus) -> None:
        """422 when only the user ID is sent."""
        response = client.post(
            f"/api/v1/professor/courses/{campus.course.id}/exams",
            json={"date": "2026-09-10T14:00:00"},
            headers={"X-User-Id": str(campus.professor.id)},
        )

        assert response.status_code == 422

    def test_add_exam_call_as_student(self, client: TestClient, campus) -> None:
        """403 for a student ID, even one that matches the professor's."""
        response = client.post(
            f"/api/v1/professor/courses/{campus.course.id}/exams",
            json={"date": "2026-09-10T14:00:00"},
            headers=as_student(campus.professor.id),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "This operation is reserved to professors"

    def test_add_exam_call_offset_date(self, client: TestClient, campus) -> None:
        """An offset date is stored and returned as UTC."""
        response = client.post(
            f"/api/v1/professor/courses/{campus.course.id}/exams",
            json={"date": "2026-09-10T14:00:00+02:00"},
            headers=as_professor(campus.professor.id),
        )

        assert response.status_code == 201
        assert response.json()["data"]["date"] == "2026-09-10T12:00:00"


@pytest.mark.unit
class TestRegisterForExam:
    """Tests for POST /student/exams/{exam_id}/register."""

    def test_register(self, client: TestClient, store: StateStore, campus) -> None:
        """204, and the registration starts not_entered."""
        student = campus.students[0]
        response = client.post(
            f"/api/v1/student/exams/{campus.exam.id}/register", headers=as_student(student.id)
        )

        assert response.status_code == 204
        registration = store.get_registration_by_student(student.id, campus.exam.id)
        assert registration.registration_status is RegistrationStatus.NOT_ENTERED

    def test_register_twice(self, client: TestClient, campus) -> None:
        """409 on the second registration."""
        student = campus.students[0]
        url = f"/api/v1/student/exams/{campus.exam.id}/register"
        client.post(url, headers=as_student(student.id))

        response = client.post(url, headers=as_student(student.id))

        assert response.status_code == 409
        assert response.json()["error"] == "You are already registered for this exam"

    def test_register_not_enrolled(self, client: TestClient, campus) -> None:
        response = client.post(
            f"/api/v1/student/exams/{campus.exam.id}/register",
            headers=as_student(campus.outsider.id),
        )

        assert response.status_code == 403

    def test_register_as_professor(self, client: TestClient, campus) -> None:
        """403 when a professor calls a student route."""
        response = client.post(
            f"/api/v1/student/exams/{campus.exam.id}/register",
            headers=as_professor(campus.students[0].id),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "This operation is reserved to students"

    def test_register_unknown_exam(self, client: TestClient, campus) -> None:
        response = client.post(
            "/api/v1/student/exams/999/register", headers=as_student(campus.students[0].id)
        )

        assert response.status_code == 404

    def test_registered_exam_ids(self, client: TestClient, campus) -> None:
        student = campus.students[0]
        client.post(
            f"/api/v1/student/exams/{campus.exam.id}/register", headers=as_student(student.id)
        )

        response = client.get(
            f"/api/v1/student/courses/{campus.course.id}/registered-exams",
            headers=as_student(student.id),
        )

        assert response.status_code == 200
        assert response.json()["data"] == [campus.exam.id]


@pytest.mark.unit
class TestListRegistrations:
    """Tests for GET /professor/exams/{exam_id}/registrations."""

    @pytest.fixture
    def registered(self, client: TestClient, campus) -> None:
        for student in campus.students:
            client.post(
                f"/api/v1/student/exams/{campus.exam.id}/register", headers=as_student(student.id)
            )

    def test_default_sort(self, client: TestClient, campus, registered) -> None:
        response = client.get(
            f"/api/v1/professor/exams/{campus.exam.id}/registrations",
            headers=as_professor(campus.professor.id),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [r["student"]["number"] for r in data] == [1001, 1002, 1003]
        assert data[0]["status"] == "not_entered"
        assert data[0]["result"] == "empty"
        assert data[0]["can_be_declined"] is False

    def test_sort_by_name_desc(self, client: TestClient, campus, registered) -> None:
        response = client.get(
            f"/api/v1/professor/exams/{campus.exam.id}/registrations",
            params={"sort_by": "student.name", "sort_dir": "desc"},
            headers=as_professor(campus.professor.id),
        )

        names = [r["student"]["name"] for r in response.json()["data"]]
        assert names == ["Mario", "Luca", "Anna"]

    def test_not_owner(self, client: TestClient, campus, registered) -> None:
        response = client.get(
            f"/api/v1/professor/exams/{campus.exam.id}/registrations",
            headers=as_professor(campus.other_professor.id),
        )

        assert response.status_code == 403
        assert response.json()["data"] is None
