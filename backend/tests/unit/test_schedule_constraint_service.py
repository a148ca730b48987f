"""
Unit tests for holidays, maintenance windows and leaves.
"""

import pytest
from datetime import date, datetime, time

from auth.dependencies import CallerContext
from core.exceptions import NotFoundError, ValidationError
from models import Holiday, Leave
from services.schedule_constraint_service import ScheduleConstraintService
from tests.conftest import create_clinic, create_employee, create_user


@pytest.fixture
def admin_setup(db_session):
    clinic = create_clinic(db_session)
    admin = create_user(db_session, clinic, "Admin", "admin@example.com", role="admin")
    employee = create_employee(db_session, clinic, "Dr. Lin", "lin@example.com")
    caller = CallerContext(user_id=admin.id, role="admin", clinic_id=clinic.id)
    return clinic, caller, employee


class TestHolidays:

    def test_create_list_delete(self, db_session, admin_setup):
        clinic, caller, _ = admin_setup
        new_year = ScheduleConstraintService.create_holiday(
            db_session, caller, clinic.id, "New Year", date(2025, 1, 1), recurring_yearly=True
        )
        one_off = ScheduleConstraintService.create_holiday(
            db_session, caller, clinic.id, " Renovation ", date(2025, 6, 2)
        )
        ScheduleConstraintService.create_holiday(db_session, caller, clinic.id, "Old closure", date(2024, 6, 2))

        assert one_off.title == "Renovation"
        assert new_year.created_by_id == caller.user_id

        in_2026 = ScheduleConstraintService.list_holidays(db_session, clinic.id, 2026)
        assert [h.id for h in in_2026] == [new_year.id]

        in_2025 = ScheduleConstraintService.list_holidays(db_session, clinic.id, 2025)
        assert {h.id for h in in_2025} == {new_year.id, one_off.id}

        assert len(ScheduleConstraintService.list_holidays(db_session, clinic.id)) == 3

        ScheduleConstraintService.delete_holiday(db_session, one_off.id)
        assert db_session.query(Holiday).count() == 2

    def test_recurring_holiday_applies_every_year(self, db_session, admin_setup):
        clinic, caller, _ = admin_setup
        holiday = ScheduleConstraintService.create_holiday(
            db_session, caller, clinic.id, "Anniversary", date(2020, 3, 3), recurring_yearly=True
        )

        assert holiday.applies_to(date(2025, 3, 3))
        assert not holiday.applies_to(date(2025, 3, 4))

    def test_validation(self, db_session, admin_setup):
        clinic, caller, _ = admin_setup

        with pytest.raises(ValidationError):
            ScheduleConstraintService.create_holiday(db_session, caller, clinic.id, "  ", date(2025, 1, 1))
        with pytest.raises(NotFoundError):
            ScheduleConstraintService.create_holiday(db_session, caller, 999, "Closed", date(2025, 1, 1))
        with pytest.raises(NotFoundError):
            ScheduleConstraintService.delete_holiday(db_session, 999)


class TestMaintenanceWindows:

    def test_create_and_list_by_range(self, db_session, admin_setup):
        clinic, caller, _ = admin_setup
        morning = ScheduleConstraintService.create_maintenance_window(
            db_session, caller, clinic.id,
            datetime(2025, 3, 3, 8, 0), datetime(2025, 3, 3, 10, 0),
            title="Floor cleaning", resource="Room A"
        )
        ScheduleConstraintService.create_maintenance_window(
            db_session, caller, clinic.id, datetime(2025, 3, 20, 8, 0), datetime(2025, 3, 20, 9, 0)
        )

        found = ScheduleConstraintService.list_maintenance_windows(
            db_session, clinic.id, datetime(2025, 3, 3, 9, 0), datetime(2025, 3, 4, 0, 0)
        )
        assert [w.id for w in found] == [morning.id]
        assert len(ScheduleConstraintService.list_maintenance_windows(db_session, clinic.id)) == 2

        ScheduleConstraintService.delete_maintenance_window(db_session, morning.id)
        assert len(ScheduleConstraintService.list_maintenance_windows(db_session, clinic.id)) == 1

    def test_window_must_end_after_start(self, db_session, admin_setup):
        clinic, caller, _ = admin_setup
        moment = datetime(2025, 3, 3, 8, 0)

        with pytest.raises(ValidationError):
            ScheduleConstraintService.create_maintenance_window(db_session, caller, clinic.id, moment, moment)

    def test_delete_missing(self, db_session):
        with pytest.raises(NotFoundError):
            ScheduleConstraintService.delete_maintenance_window(db_session, 1)


class TestLeaves:

    def test_partial_leave(self, db_session, admin_setup):
        _, caller, employee = admin_setup

        leave = ScheduleConstraintService.create_leave(
            db_session, caller, employee.id,
            datetime(2025, 3, 3), datetime(2025, 3, 7),
            reason="Training", partial=True,
            partial_start_time=time(13, 0), partial_end_time=time(17, 0)
        )

        assert (leave.partial_start_time, leave.partial_end_time) == (time(13, 0), time(17, 0))
        assert leave.blocked_intervals_on(date(2025, 3, 5)) == [
            (datetime(2025, 3, 5, 13, 0), datetime(2025, 3, 5, 17, 0))
        ]
        assert leave.blocked_intervals_on(date(2025, 3, 8)) == []

    def test_full_leave_ignores_partial_times(self, db_session, admin_setup):
        _, caller, employee = admin_setup

        leave = ScheduleConstraintService.create_leave(
            db_session, caller, employee.id,
            datetime(2025, 3, 3, 12, 0), datetime(2025, 3, 4, 12, 0),
            partial_start_time=time(9, 0), partial_end_time=time(10, 0)
        )

        assert leave.partial_start_time is None
        assert leave.blocked_intervals_on(date(2025, 3, 3)) == [
            (datetime(2025, 3, 3, 12, 0), datetime(2025, 3, 4, 0, 0))
        ]

    @pytest.mark.parametrize("start,end,partial,p_start,p_end", [
        (datetime(2025, 3, 5), datetime(2025, 3, 3), False, None, None),
        (datetime(2025, 3, 3), datetime(2025, 3, 3), False, None, None),
        (datetime(2025, 3, 3), datetime(2025, 3, 5), True, None, time(12, 0)),
        (datetime(2025, 3, 3), datetime(2025, 3, 5), True, time(12, 0), time(9, 0)),
    ])
    def test_invalid_leave(self, db_session, admin_setup, start, end, partial, p_start, p_end):
        _, caller, employee = admin_setup

        with pytest.raises(ValidationError):
            ScheduleConstraintService.create_leave(
                db_session, caller, employee.id, start, end,
                partial=partial, partial_start_time=p_start, partial_end_time=p_end
            )

    def test_leave_for_non_employee_is_rejected(self, db_session, admin_setup):
        _, caller, _ = admin_setup

        with pytest.raises(ValidationError):
            ScheduleConstraintService.create_leave(
                db_session, caller, caller.user_id, datetime(2025, 3, 3), datetime(2025, 3, 4)
            )

    def test_leave_for_unknown_employee(self, db_session, admin_setup):
        _, caller, _ = admin_setup

        with pytest.raises(NotFoundError):
            ScheduleConstraintService.create_leave(
                db_session, caller, 9999, datetime(2025, 3, 3), datetime(2025, 3, 4)
            )

    def test_single_day_partial_leave(self, db_session, admin_setup):
        _, caller, employee = admin_setup

        leave = ScheduleConstraintService.create_leave(
            db_session, caller, employee.id,
            datetime(2025, 3, 3), datetime(2025, 3, 3),
            partial=True, partial_start_time=time(9, 0), partial_end_time=time(10, 0)
        )

        assert leave.blocked_intervals_on(date(2025, 3, 3)) == [
            (datetime(2025, 3, 3, 9, 0), datetime(2025, 3, 3, 10, 0))
        ]

    def test_list_and_delete(self, db_session, admin_setup):
        clinic, caller, employee = admin_setup
        colleague = create_employee(db_session, clinic, "Dr. Wu", "wu@example.com")
        march = ScheduleConstraintService.create_leave(
            db_session, caller, employee.id, datetime(2025, 3, 3), datetime(2025, 3, 4)
        )
        ScheduleConstraintService.create_leave(
            db_session, caller, employee.id, datetime(2025, 5, 1), datetime(2025, 5, 2)
        )
        ScheduleConstraintService.create_leave(
            db_session, caller, colleague.id, datetime(2025, 3, 3), datetime(2025, 3, 4)
        )

        assert len(ScheduleConstraintService.list_leaves(db_session, employee.id)) == 2
        in_march = ScheduleConstraintService.list_leaves(
            db_session, employee.id, datetime(2025, 3, 1), datetime(2025, 3, 31)
        )
        assert [leave.id for leave in in_march] == [march.id]

        ScheduleConstraintService.delete_leave(db_session, march.id)
        assert db_session.query(Leave).count() == 2

        with pytest.raises(NotFoundError):
            ScheduleConstraintService.delete_leave(db_session, march.id)
