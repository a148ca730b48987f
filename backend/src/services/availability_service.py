"""
Availability service for the month calendar.

This module builds the per-day, per-employee slot grid shown on the calendar
view. Every slot is derived on request from working hours, holidays,
maintenance windows, leaves and scheduled appointments; nothing is persisted.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, date as date_type, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, ValidationError
from models import User, WorkingHours, Holiday, MaintenanceWindow, Leave, Clinic
from shared_types.availability import Slot, EmployeeSlotGrid, DayGrid
from utils.appointment_queries import get_scheduled_appointments_for_employees
from utils.interval_utils import intervals_overlap
from utils.query_helpers import filter_active_employees, filter_overlapping_range

logger = logging.getLogger(__name__)


@dataclass
class ScheduleSnapshot:
    """
    Everything needed to lay out slots for a date range, loaded once.

    Building slots from a snapshot touches no database session, so the grid
    can be computed for many days and employees without further queries.
    """
    employee_names: Dict[int, str] = field(default_factory=dict)
    working_hours: Dict[int, Dict[int, Tuple[time, time]]] = field(default_factory=dict)
    """employee_id -> weekday -> effective (start, end) window."""

    holidays: List[Holiday] = field(default_factory=list)
    maintenance_windows: List[Tuple[datetime, datetime]] = field(default_factory=list)
    leaves: Dict[int, List[Leave]] = field(default_factory=dict)
    appointments: Dict[int, List[Tuple[int, datetime, datetime]]] = field(default_factory=dict)
    """employee_id -> [(appointment_id, start, end)] for scheduled appointments."""


class AvailabilityService:
    """
    Service class for availability operations.

    Contains the slot grid builder used by the calendar endpoint.
    """

    @staticmethod
    def _validate_month(year: int, month: int, slot_duration_minutes: int) -> None:
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        if year < 1 or year > 9999:
            raise ValidationError(f"Invalid year: {year}")
        if slot_duration_minutes <= 0:
            raise ValidationError("slot_duration_minutes must be positive")

    @staticmethod
    def _resolve_employees(
        db: Session,
        clinic_id: int,
        employee_ids: Optional[Sequence[int]]
    ) -> List[User]:
        """
        Resolve the employees to show.

        Raises:
            NotFoundError: If an explicitly requested employee is not an
                active employee of the clinic
        """
        query = filter_active_employees(db.query(User).filter(User.clinic_id == clinic_id))

        if not employee_ids:
            return query.order_by(User.id).all()

        requested = list(dict.fromkeys(employee_ids))
        employees = query.filter(User.id.in_(requested)).all()
        by_id = {employee.id: employee for employee in employees}
        missing = [employee_id for employee_id in requested if employee_id not in by_id]
        if missing:
            raise NotFoundError(f"Employee not found: {missing[0]}")
        return [by_id[employee_id] for employee_id in requested]

    @staticmethod
    def load_snapshot(
        db: Session,
        clinic_id: int,
        employees: Sequence[User],
        range_start: datetime,
        range_end: datetime
    ) -> ScheduleSnapshot:
        """
        Batch-load all schedule data for the employees over [range_start, range_end).

        One query per source, regardless of how many employees or days are shown.
        """
        employee_ids = [employee.id for employee in employees]
        snapshot = ScheduleSnapshot(
            employee_names={employee.id: employee.name for employee in employees}
        )
        if not employee_ids:
            return snapshot

        hours = db.query(WorkingHours).filter(
            WorkingHours.user_id.in_(employee_ids)
        ).order_by(WorkingHours.user_id, WorkingHours.id).all()
        for row in hours:
            per_day = snapshot.working_hours.setdefault(row.user_id, {})
            # First row for a weekday wins
            per_day.setdefault(row.day_of_week, (row.start_time, row.end_time))

        # Recurring holidays can carry any year, so they are not range-filtered
        snapshot.holidays = db.query(Holiday).filter(Holiday.clinic_id == clinic_id).all()

        windows = filter_overlapping_range(
            db.query(MaintenanceWindow).filter(MaintenanceWindow.clinic_id == clinic_id),
            MaintenanceWindow.start_at, MaintenanceWindow.end_at,
            range_start, range_end
        ).all()
        snapshot.maintenance_windows = [(window.start_at, window.end_at) for window in windows]

        leaves = db.query(Leave).filter(
            Leave.employee_id.in_(employee_ids),
            Leave.start_at < range_end,
            Leave.end_at >= range_start,
        ).all()
        for leave in leaves:
            snapshot.leaves.setdefault(leave.employee_id, []).append(leave)

        # Appointments starting the evening before can still run into the range
        appointments = get_scheduled_appointments_for_employees(
            db, employee_ids, range_start - timedelta(days=1), range_end
        )
        for appointment in appointments:
            snapshot.appointments.setdefault(appointment.employee_id, []).append(
                (appointment.id, appointment.start_at, appointment.end_at)
            )

        return snapshot

    @staticmethod
    def build_day_slots(
        snapshot: ScheduleSnapshot,
        employee_id: int,
        day: date_type,
        slot_duration_minutes: int
    ) -> List[Slot]:
        """
        Lay out one employee's slots for one day.

        The working window is cut into whole slots of slot_duration_minutes
        (a trailing remainder is dropped). Every slot starts available and is
        then overwritten in order by holiday, maintenance, leave and booked,
        so a booked slot shows as booked even inside a leave or closure.

        Returns:
            Slots in chronological order; empty if the employee does not work that weekday
        """
        window = snapshot.working_hours.get(employee_id, {}).get(day.weekday())
        if window is None:
            return []

        day_from = datetime.combine(day, window[0])
        day_to = datetime.combine(day, window[1])
        step = timedelta(minutes=slot_duration_minutes)

        slots: List[Slot] = []
        cursor = day_from
        while cursor + step <= day_to:
            slots.append(Slot(start=cursor, end=cursor + step))
            cursor += step

        if not slots:
            return slots

        if any(holiday.applies_to(day) for holiday in snapshot.holidays):
            for slot in slots:
                slot.status = "holiday"

        for window_start, window_end in snapshot.maintenance_windows:
            for slot in slots:
                if intervals_overlap(slot.start, slot.end, window_start, window_end):
                    slot.status = "maintenance"

        for leave in snapshot.leaves.get(employee_id, []):
            for blocked_start, blocked_end in leave.blocked_intervals_on(day):
                for slot in slots:
                    if intervals_overlap(slot.start, slot.end, blocked_start, blocked_end):
                        slot.status = "leave"

        for appointment_id, appointment_start, appointment_end in snapshot.appointments.get(employee_id, []):
            for slot in slots:
                if intervals_overlap(slot.start, slot.end, appointment_start, appointment_end):
                    slot.status = "booked"
                    slot.appointment_id = appointment_id

        return slots

    @staticmethod
    def build_month(
        db: Session,
        clinic_id: int,
        employee_ids: Optional[Sequence[int]],
        year: int,
        month: int,
        slot_duration_minutes: int
    ) -> List[DayGrid]:
        """
        Build the availability grid for every day of a month.

        Args:
            db: Database session
            clinic_id: Clinic to build the grid for
            employee_ids: Employees to include; None or empty means every
                active employee of the clinic
            year: Calendar year
            month: Calendar month (1-12)
            slot_duration_minutes: Length of each slot

        Returns:
            One DayGrid per day of the month, each with one EmployeeSlotGrid
            per employee (in request order)

        Raises:
            ValidationError: If month or slot duration is out of range
            NotFoundError: If the clinic or a requested employee does not exist
        """
        AvailabilityService._validate_month(year, month, slot_duration_minutes)

        clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
        if not clinic:
            raise NotFoundError(f"Clinic not found: {clinic_id}")

        employees = AvailabilityService._resolve_employees(db, clinic_id, employee_ids)

        days_in_month = calendar.monthrange(year, month)[1]
        first_day = date_type(year, month, 1)
        range_start = datetime.combine(first_day, time.min)
        range_end = range_start + timedelta(days=days_in_month)

        snapshot = AvailabilityService.load_snapshot(db, clinic_id, employees, range_start, range_end)

        result: List[DayGrid] = []
        for offset in range(days_in_month):
            day = first_day + timedelta(days=offset)
            day_grid = DayGrid(date=day)
            for employee in employees:
                day_grid.employees.append(EmployeeSlotGrid(
                    employee_id=employee.id,
                    employee_name=snapshot.employee_names[employee.id],
                    slots=AvailabilityService.build_day_slots(
                        snapshot, employee.id, day, slot_duration_minutes
                    ),
                ))
            result.append(day_grid)

        logger.debug(
            f"Built availability for clinic {clinic_id} {year}-{month:02d}: "
            f"{len(employees)} employees, slot={slot_duration_minutes}min"
        )
        return result
