"""
Schedule constraint service for holidays, maintenance windows and leaves.

These records only ever remove availability; the calendar grid reads them
back through AvailabilityService. Managing them is restricted to admin and
front desk at the API layer.
"""

import logging
from datetime import datetime, date as date_type, time
from typing import List, Optional

from sqlalchemy.orm import Session

from auth.dependencies import CallerContext
from core.exceptions import NotFoundError, ValidationError
from models import Clinic, Holiday, Leave, MaintenanceWindow, User
from utils.datetime_utils import ensure_naive_utc, to_naive_utc
from utils.query_helpers import filter_overlapping_range

logger = logging.getLogger(__name__)


class ScheduleConstraintService:
    """Service class for availability-blocking records."""

    @staticmethod
    def _ensure_clinic(db: Session, clinic_id: int) -> Clinic:
        clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
        if not clinic:
            raise NotFoundError("Clinic not found")
        return clinic

    # ===== Holidays =====

    @staticmethod
    def create_holiday(
        db: Session,
        caller: CallerContext,
        clinic_id: int,
        title: str,
        holiday_date: date_type,
        recurring_yearly: bool = False
    ) -> Holiday:
        if not title or not title.strip():
            raise ValidationError("Title is required")
        ScheduleConstraintService._ensure_clinic(db, clinic_id)

        holiday = Holiday(
            clinic_id=clinic_id,
            title=title.strip(),
            date=holiday_date,
            recurring_yearly=recurring_yearly,
            created_by_id=caller.user_id,
        )
        db.add(holiday)
        db.commit()
        db.refresh(holiday)
        logger.info(f"Created holiday {holiday.id} on {holiday_date} for clinic {clinic_id}")
        return holiday

    @staticmethod
    def list_holidays(db: Session, clinic_id: int, year: Optional[int] = None) -> List[Holiday]:
        """
        Holidays of a clinic ordered by date.

        When a year is given, recurring holidays are always included since
        they apply to every year.
        """
        holidays = db.query(Holiday).filter(Holiday.clinic_id == clinic_id).order_by(Holiday.date).all()
        if year is None:
            return holidays
        return [h for h in holidays if h.recurring_yearly or h.date.year == year]

    @staticmethod
    def delete_holiday(db: Session, holiday_id: int) -> None:
        holiday = db.query(Holiday).filter(Holiday.id == holiday_id).first()
        if not holiday:
            raise NotFoundError("Holiday not found")
        db.delete(holiday)
        db.commit()
        logger.info(f"Deleted holiday {holiday_id}")

    # ===== Maintenance windows =====

    @staticmethod
    def create_maintenance_window(
        db: Session,
        caller: CallerContext,
        clinic_id: int,
        start_at: datetime,
        end_at: datetime,
        title: Optional[str] = None,
        resource: Optional[str] = None
    ) -> MaintenanceWindow:
        start = to_naive_utc(start_at)
        end = to_naive_utc(end_at)
        if start >= end:
            raise ValidationError("Maintenance window must end after it starts")
        ScheduleConstraintService._ensure_clinic(db, clinic_id)

        window = MaintenanceWindow(
            clinic_id=clinic_id,
            title=title,
            start_at=start,
            end_at=end,
            resource=resource,
            created_by_id=caller.user_id,
        )
        db.add(window)
        db.commit()
        db.refresh(window)
        logger.info(f"Created maintenance window {window.id} for clinic {clinic_id}: {start} - {end}")
        return window

    @staticmethod
    def list_maintenance_windows(
        db: Session,
        clinic_id: int,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None
    ) -> List[MaintenanceWindow]:
        """Maintenance windows of a clinic, optionally only those intersecting a range."""
        query = db.query(MaintenanceWindow).filter(MaintenanceWindow.clinic_id == clinic_id)
        if range_start is not None and range_end is not None:
            query = filter_overlapping_range(
                query, MaintenanceWindow.start_at, MaintenanceWindow.end_at,
                ensure_naive_utc(range_start), ensure_naive_utc(range_end)
            )
        return query.order_by(MaintenanceWindow.start_at).all()

    @staticmethod
    def delete_maintenance_window(db: Session, window_id: int) -> None:
        window = db.query(MaintenanceWindow).filter(MaintenanceWindow.id == window_id).first()
        if not window:
            raise NotFoundError("Maintenance window not found")
        db.delete(window)
        db.commit()
        logger.info(f"Deleted maintenance window {window_id}")

    # ===== Leaves =====

    @staticmethod
    def create_leave(
        db: Session,
        caller: CallerContext,
        employee_id: int,
        start_at: datetime,
        end_at: datetime,
        reason: Optional[str] = None,
        partial: bool = False,
        partial_start_time: Optional[time] = None,
        partial_end_time: Optional[time] = None
    ) -> Leave:
        """
        Record leave for an employee.

        A partial leave needs both partial times; it then blocks that window on
        every day from start_at's date to end_at's date.

        Raises:
            NotFoundError: If the employee does not exist
            ValidationError: If the range is empty or inverted, partial times
                are missing or inverted, or the user is not an employee
        """
        start = to_naive_utc(start_at)
        end = to_naive_utc(end_at)
        if partial:
            if start > end:
                raise ValidationError("Leave must not end before it starts")
            if partial_start_time is None or partial_end_time is None:
                raise ValidationError("Partial leave requires start and end times")
            if partial_start_time >= partial_end_time:
                raise ValidationError("Partial leave must end after it starts")
        else:
            if start >= end:
                raise ValidationError("Leave must end after it starts")
            partial_start_time = None
            partial_end_time = None

        employee = db.query(User).filter(User.id == employee_id).first()
        if not employee:
            raise NotFoundError("Employee not found")
        if not employee.is_employee:
            raise ValidationError("User is not an employee")

        leave = Leave(
            employee_id=employee_id,
            start_at=start,
            end_at=end,
            reason=reason,
            partial=partial,
            partial_start_time=partial_start_time,
            partial_end_time=partial_end_time,
            created_by_id=caller.user_id,
        )
        db.add(leave)
        db.commit()
        db.refresh(leave)
        logger.info(f"Created leave {leave.id} for employee {employee_id}: {start} - {end} (partial={partial})")
        return leave

    @staticmethod
    def list_leaves(
        db: Session,
        employee_id: Optional[int] = None,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None
    ) -> List[Leave]:
        query = db.query(Leave)
        if employee_id is not None:
            query = query.filter(Leave.employee_id == employee_id)
        if range_start is not None and range_end is not None:
            query = query.filter(
                Leave.start_at <= ensure_naive_utc(range_end),
                Leave.end_at >= ensure_naive_utc(range_start),
            )
        return query.order_by(Leave.start_at).all()

    @staticmethod
    def delete_leave(db: Session, leave_id: int) -> None:
        leave = db.query(Leave).filter(Leave.id == leave_id).first()
        if not leave:
            raise NotFoundError("Leave not found")
        db.delete(leave)
        db.commit()
        logger.info(f"Deleted leave {leave_id}")
