"""
Integration tests for the appointment API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from core.database import get_db
from models import Appointment
from tests.conftest import create_clinic, create_employee, create_user
from tests.utils import auth_headers


@pytest.fixture
def client(session_maker):
    """Create test client whose requests each get their own session on the test database."""
    def override_get_db():
        db = session_maker()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def people(db_session):
    clinic = create_clinic(db_session)
    employee = create_employee(db_session, clinic, "Dr. Chen", "chen@example.com")
    patient = create_user(db_session, None, "Patient", "patient@example.com")
    admin = create_user(db_session, clinic, "Admin", "admin@example.com", role="admin")
    return clinic, employee, patient, admin


def _headers(user):
    return auth_headers(user.id, user.role, user.clinic_id)


class TestBookingAPI:
    """POST /api/appointments and conflict handling."""

    def test_book_then_conflict(self, client: TestClient, db_session, people):
        _, employee, patient, _ = people
        body = {"employee_id": employee.id, "start_at": "2025-03-03T10:00:00Z", "reason": "Neck pain"}

        created = client.post("/api/appointments", json=body, headers=_headers(patient))

        assert created.status_code == 201
        data = created.json()
        assert data["status"] == "scheduled"
        assert data["duration_minutes"] == 30
        assert data["start_at"] == "2025-03-03T10:00:00"
        assert data["end_at"] == "2025-03-03T10:30:00"

        overlapping = client.post(
            "/api/appointments",
            json={"employee_id": employee.id, "start_at": "2025-03-03T10:15:00Z"},
            headers=_headers(patient),
        )

        assert overlapping.status_code == 409
        assert overlapping.json()["type"] == "conflict"
        assert overlapping.json()["conflicting_appointment_ids"] == [data["id"]]
        assert db_session.query(Appointment).count() == 1

    def test_offset_start_is_normalized_to_utc(self, client: TestClient, people):
        _, employee, patient, _ = people

        response = client.post(
            "/api/appointments",
            json={"employee_id": employee.id, "start_at": "2025-03-03T18:00:00+08:00"},
            headers=_headers(patient),
        )

        assert response.status_code == 201
        assert response.json()["start_at"] == "2025-03-03T10:00:00"

    def test_requires_authentication(self, client: TestClient, people):
        _, employee, _, _ = people

        response = client.post("/api/appointments", json={"employee_id": employee.id, "start_at": "2025-03-03T10:00:00"})

        assert response.status_code == 401

    def test_booking_for_someone_else_is_forbidden(self, client: TestClient, db_session, people):
        _, employee, patient, _ = people
        other = create_user(db_session, None, "Other", "other@example.com")

        response = client.post(
            "/api/appointments",
            json={"employee_id": employee.id, "start_at": "2025-03-03T10:00:00", "patient_id": other.id},
            headers=_headers(patient),
        )

        assert response.status_code == 403

    def test_admin_books_on_behalf(self, client: TestClient, people):
        _, employee, patient, admin = people

        response = client.post(
            "/api/appointments",
            json={"employee_id": employee.id, "start_at": "2025-03-03T10:00:00", "patient_id": patient.id},
            headers=_headers(admin),
        )

        assert response.status_code == 201
        assert response.json()["patient_id"] == patient.id

    def test_booking_a_non_employee_is_rejected(self, client: TestClient, people):
        _, _, patient, admin = people

        response = client.post(
            "/api/appointments",
            json={"employee_id": admin.id, "start_at": "2025-03-03T10:00:00"},
            headers=_headers(patient),
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"


class TestLifecycleAPI:
    """Reading, cancelling, status changes and rescheduling."""

    def _book(self, client, employee, patient, start="2025-03-03T10:00:00"):
        response = client.post(
            "/api/appointments",
            json={"employee_id": employee.id, "start_at": start},
            headers=_headers(patient),
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_get_and_list(self, client: TestClient, people):
        _, employee, patient, _ = people
        appointment_id = self._book(client, employee, patient)

        single = client.get(f"/api/appointments/{appointment_id}", headers=_headers(patient))
        assert single.status_code == 200
        assert single.json()["id"] == appointment_id

        listed = client.get("/api/appointments", params={"status": "scheduled"}, headers=_headers(employee))
        assert [a["id"] for a in listed.json()["appointments"]] == [appointment_id]

        missing = client.get("/api/appointments/9999", headers=_headers(patient))
        assert missing.status_code == 404

    def test_cancel_twice(self, client: TestClient, people):
        _, employee, patient, _ = people
        appointment_id = self._book(client, employee, patient)

        first = client.patch(f"/api/appointments/{appointment_id}/cancel", headers=_headers(patient))
        second = client.patch(f"/api/appointments/{appointment_id}/cancel", headers=_headers(patient))

        assert first.status_code == 200
        assert first.json()["status"] == "cancelled"
        assert second.status_code == 200
        assert second.json()["cancelled_at"] == first.json()["cancelled_at"]

    def test_employee_cannot_cancel(self, client: TestClient, people):
        _, employee, patient, _ = people
        appointment_id = self._book(client, employee, patient)

        response = client.patch(f"/api/appointments/{appointment_id}/cancel", headers=_headers(employee))

        assert response.status_code == 403

    def test_status_change(self, client: TestClient, people):
        _, employee, patient, _ = people
        appointment_id = self._book(client, employee, patient)

        invalid = client.patch(
            f"/api/appointments/{appointment_id}/status", json={"status": "no_show"}, headers=_headers(employee)
        )
        assert invalid.status_code == 400

        completed = client.patch(
            f"/api/appointments/{appointment_id}/status", json={"status": "completed"}, headers=_headers(employee)
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

    def test_reschedule(self, client: TestClient, people):
        _, employee, patient, _ = people
        first = self._book(client, employee, patient, "2025-03-03T10:00:00")
        self._book(client, employee, patient, "2025-03-03T11:00:00")

        moved = client.post(
            f"/api/appointments/{first}/reschedule",
            json={"start_at": "2025-03-03T10:15:00"},
            headers=_headers(patient),
        )
        assert moved.status_code == 200
        assert moved.json()["start_at"] == "2025-03-03T10:15:00"

        clash = client.post(
            f"/api/appointments/{first}/reschedule",
            json={"start_at": "2025-03-03T10:45:00"},
            headers=_headers(patient),
        )
        assert clash.status_code == 409


class TestEmployeeScheduleAPI:
    """GET /api/appointments/employee/schedule."""

    def test_employee_gets_own_schedule_grouped_by_day(self, client: TestClient, people):
        _, employee, patient, _ = people
        for start in ("2025-03-03T10:00:00", "2025-03-03T09:00:00", "2025-03-04T10:00:00"):
            client.post(
                "/api/appointments",
                json={"employee_id": employee.id, "start_at": start},
                headers=_headers(patient),
            )

        response = client.get(
            "/api/appointments/employee/schedule",
            params={"from": "2025-03-03T00:00:00", "to": "2025-03-10T00:00:00"},
            headers=_headers(employee),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["employee_id"] == employee.id
        assert list(data["schedule"].keys()) == ["2025-03-03", "2025-03-04"]
        assert [a["start_at"] for a in data["schedule"]["2025-03-03"]] == [
            "2025-03-03T09:00:00", "2025-03-03T10:00:00"
        ]

    def test_admin_must_pass_employee(self, client: TestClient, people):
        _, employee, _, admin = people

        missing = client.get("/api/appointments/employee/schedule", headers=_headers(admin))
        assert missing.status_code == 400

        ok = client.get(
            "/api/appointments/employee/schedule", params={"employee": employee.id}, headers=_headers(admin)
        )
        assert ok.status_code == 200
        assert ok.json()["employee_id"] == employee.id

    def test_patients_are_forbidden(self, client: TestClient, people):
        _, _, patient, _ = people

        response = client.get("/api/appointments/employee/schedule", headers=_headers(patient))

        assert response.status_code == 403

    def test_inverted_window(self, client: TestClient, people):
        _, employee, _, _ = people

        response = client.get(
            "/api/appointments/employee/schedule",
            params={"from": "2025-03-10T00:00:00", "to": "2025-03-03T00:00:00"},
            headers=_headers(employee),
        )

        assert response.status_code == 400
