"""
Unit tests for the appointment conflict guard.
"""

import pytest
from datetime import datetime

from core.exceptions import ConflictError, ValidationError
from models import Appointment
from services.scheduling_conflict_service import (
    SchedulingConflictService,
    WINDOW_MODE_FIXED,
    WINDOW_MODE_WIDENED,
)
from tests.conftest import create_clinic, create_employee, create_user


def _book(db_session, patient, employee, start, duration=30, status="scheduled"):
    appointment = Appointment(
        patient_id=patient.id,
        employee_id=employee.id,
        start_at=start,
        duration_minutes=duration,
        status=status,
    )
    db_session.add(appointment)
    db_session.commit()
    return appointment


@pytest.fixture
def booking_setup(db_session):
    clinic = create_clinic(db_session)
    employee = create_employee(db_session, clinic, "Dr. Chen", "chen@example.com")
    patient = create_user(db_session, None, "Patient", "patient@example.com")
    existing = _book(db_session, patient, employee, datetime(2025, 3, 3, 10, 0))
    return employee, patient, existing


class TestCheckConflict:
    """Overlap detection against scheduled appointments."""

    def test_overlapping_candidate_conflicts(self, db_session, booking_setup):
        employee, _, existing = booking_setup

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 15), 30
        )

        assert result.has_conflict
        assert result.conflicting_appointment_ids == [existing.id]
        assert result.end == datetime(2025, 3, 3, 10, 45)

    @pytest.mark.parametrize("start", [
        datetime(2025, 3, 3, 10, 30),  # starts when the existing one ends
        datetime(2025, 3, 3, 9, 30),   # ends when the existing one starts
    ])
    def test_touching_intervals_do_not_conflict(self, db_session, booking_setup, start):
        employee, _, _ = booking_setup

        result = SchedulingConflictService.check_conflict(db_session, employee.id, start, 30)

        assert not result.has_conflict

    def test_excluded_appointment_is_ignored(self, db_session, booking_setup):
        employee, _, existing = booking_setup

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 0), 30,
            exclude_appointment_id=existing.id
        )

        assert not result.has_conflict

    def test_cancelled_and_completed_do_not_block(self, db_session, booking_setup):
        employee, patient, existing = booking_setup
        existing.status = "cancelled"
        db_session.commit()
        _book(db_session, patient, employee, datetime(2025, 3, 3, 10, 0), status="completed")

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 0), 30
        )

        assert not result.has_conflict

    def test_other_employees_do_not_block(self, db_session, booking_setup):
        other = create_employee(db_session, create_clinic(db_session, "Second"), "Dr. Wu", "wu@example.com")

        result = SchedulingConflictService.check_conflict(
            db_session, other.id, datetime(2025, 3, 3, 10, 0), 30
        )

        assert not result.has_conflict

    def test_every_overlapping_id_is_reported(self, db_session, booking_setup):
        employee, patient, existing = booking_setup
        later = _book(db_session, patient, employee, datetime(2025, 3, 3, 10, 30))

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 15), 30
        )

        assert result.conflicting_appointment_ids == [existing.id, later.id]

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_is_rejected(self, db_session, booking_setup, duration):
        employee, _, _ = booking_setup
        with pytest.raises(ValidationError):
            SchedulingConflictService.check_conflict(
                db_session, employee.id, datetime(2025, 3, 3, 10, 0), duration
            )


class TestSearchWindow:
    """Fixed vs widened search windows."""

    def test_fixed_window_misses_long_earlier_appointment(self, db_session):
        clinic = create_clinic(db_session)
        employee = create_employee(db_session, clinic, "Dr. Chen", "chen@example.com")
        patient = create_user(db_session, None, "Patient", "patient@example.com")
        _book(db_session, patient, employee, datetime(2025, 3, 3, 8, 0), duration=180)

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 0), 30,
            window_mode=WINDOW_MODE_FIXED
        )

        assert not result.has_conflict

    def test_widened_window_catches_long_earlier_appointment(self, db_session):
        clinic = create_clinic(db_session)
        employee = create_employee(db_session, clinic, "Dr. Chen", "chen@example.com")
        patient = create_user(db_session, None, "Patient", "patient@example.com")
        long_session = _book(db_session, patient, employee, datetime(2025, 3, 3, 8, 0), duration=180)

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 0), 30,
            window_mode=WINDOW_MODE_WIDENED
        )

        assert result.conflicting_appointment_ids == [long_session.id]

    def test_widened_window_catches_later_start_inside_long_candidate(self, db_session):
        clinic = create_clinic(db_session)
        employee = create_employee(db_session, clinic, "Dr. Chen", "chen@example.com")
        patient = create_user(db_session, None, "Patient", "patient@example.com")
        afternoon = _book(db_session, patient, employee, datetime(2025, 3, 3, 12, 30))

        result = SchedulingConflictService.check_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 10, 0), 240,
            window_mode=WINDOW_MODE_WIDENED
        )

        assert result.conflicting_appointment_ids == [afternoon.id]

    def test_unknown_window_mode_is_rejected(self, db_session):
        with pytest.raises(ValueError):
            SchedulingConflictService.check_conflict(
                db_session, 1, datetime(2025, 3, 3, 10, 0), 30, window_mode="loose"
            )

    def test_fixed_window_bounds(self, db_session):
        start = datetime(2025, 3, 3, 10, 0)
        window = SchedulingConflictService._search_window(
            db_session, 1, start, 240, None, WINDOW_MODE_FIXED
        )
        assert window == (datetime(2025, 3, 3, 9, 0), datetime(2025, 3, 3, 11, 0))


class TestEnsureNoConflict:
    """Raising variant used by the appointment lifecycle."""

    def test_raises_with_conflicting_ids(self, db_session, booking_setup):
        employee, _, existing = booking_setup

        with pytest.raises(ConflictError) as exc_info:
            SchedulingConflictService.ensure_no_conflict(
                db_session, employee.id, datetime(2025, 3, 3, 9, 45), 30
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.to_dict()["conflicting_appointment_ids"] == [existing.id]

    def test_free_slot_passes(self, db_session, booking_setup):
        employee, _, _ = booking_setup

        SchedulingConflictService.ensure_no_conflict(
            db_session, employee.id, datetime(2025, 3, 3, 11, 0), 60
        )
