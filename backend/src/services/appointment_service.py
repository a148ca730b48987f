"""
Appointment service for appointment lifecycle business logic.

This module contains booking, rescheduling, cancellation and status changes
for appointments, shared by every API endpoint that touches them. Callers
pass a resolved CallerContext; all permission checks happen here.
"""

import logging
from collections import OrderedDict
from datetime import datetime, date as date_type, time, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.dependencies import CallerContext
from core.constants import (
    APPOINTMENT_STATUSES,
    DEFAULT_APPOINTMENT_DURATION_MINUTES,
    DEFAULT_SCHEDULE_WINDOW_DAYS,
    EMPLOYEE_ROLE,
)
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import Appointment, User
from services.scheduling_conflict_service import SchedulingConflictService
from utils.datetime_utils import ensure_naive_utc, to_naive_utc, utc_now

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service class for appointment operations.

    Every write that can create or move a scheduled interval locks the
    employee row first, so concurrent bookings for the same employee are
    checked one after another.
    """

    @staticmethod
    def _lock_employee(db: Session, employee_id: int) -> User:
        """
        Load and lock the employee row for the rest of the transaction.

        Raises:
            ValidationError: If the user does not exist, is inactive or is not an employee
        """
        employee = db.query(User).filter(User.id == employee_id).with_for_update().first()
        if not employee or not employee.is_active or not employee.is_employee:
            raise ValidationError("Employee not found or not an employee")
        return employee

    @staticmethod
    def _get_appointment(db: Session, appointment_id: int) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def _commit_scheduled(db: Session, appointment: Appointment, action: str) -> None:
        """
        Commit a write that leaves the appointment scheduled.

        A concurrent booking at the same start trips the partial unique index;
        that is reported as a conflict like any other overlap.
        """
        try:
            db.commit()
        except IntegrityError as e:
            logger.warning(f"Appointment {action} conflict at storage level: {e}")
            db.rollback()
            raise ConflictError("Time slot conflicts with another appointment")
        db.refresh(appointment)

    @staticmethod
    def create_appointment(
        db: Session,
        caller: CallerContext,
        employee_id: int,
        start_at: datetime,
        duration_minutes: Optional[int] = None,
        reason: Optional[str] = None,
        patient_id: Optional[int] = None
    ) -> Appointment:
        """
        Book a new appointment.

        Args:
            db: Database session
            caller: Authenticated caller
            employee_id: Employee to book
            start_at: Appointment start (converted to naive UTC)
            duration_minutes: Length in minutes, defaults to 30
            reason: Free-text reason for the visit
            patient_id: Booking owner; only admin and front desk may book for
                someone else, everyone else always books for themselves

        Returns:
            The persisted scheduled appointment

        Raises:
            ForbiddenError: If a non admin-like caller books for another user
            NotFoundError: If the patient does not exist
            ValidationError: If the employee is invalid or the duration is not positive
            ConflictError: If the slot overlaps another scheduled appointment
        """
        duration = duration_minutes if duration_minutes is not None else DEFAULT_APPOINTMENT_DURATION_MINUTES
        if duration <= 0:
            raise ValidationError("Duration must be positive")

        owner_id = caller.user_id
        if patient_id is not None and patient_id != caller.user_id:
            if not caller.is_admin_like():
                raise ForbiddenError("Only admin or front desk can book on behalf of another user")
            owner_id = patient_id

        patient = db.query(User).filter(User.id == owner_id).first()
        if not patient:
            raise NotFoundError("Patient user not found")

        start = to_naive_utc(start_at)

        try:
            AppointmentService._lock_employee(db, employee_id)
            SchedulingConflictService.ensure_no_conflict(db, employee_id, start, duration)

            appointment = Appointment(
                patient_id=owner_id,
                employee_id=employee_id,
                start_at=start,
                duration_minutes=duration,
                reason=reason,
                status="scheduled",
            )
            db.add(appointment)
            AppointmentService._commit_scheduled(db, appointment, "create")
        except (ValidationError, ConflictError):
            db.rollback()
            raise

        logger.info(
            f"Created appointment {appointment.id} for patient {owner_id} "
            f"with employee {employee_id} at {start}"
        )
        return appointment

    @staticmethod
    def get_appointment(db: Session, caller: CallerContext, appointment_id: int) -> Appointment:
        """
        Get an appointment visible to the caller (owner, assigned employee or admin-like).
        """
        appointment = AppointmentService._get_appointment(db, appointment_id)
        if not (
            caller.is_admin_like()
            or appointment.patient_id == caller.user_id
            or appointment.employee_id == caller.user_id
        ):
            raise ForbiddenError("Not allowed to view this appointment")
        return appointment

    @staticmethod
    def list_appointments(
        db: Session,
        caller: CallerContext,
        status: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None
    ) -> List[Appointment]:
        """
        List appointments visible to the caller, ordered by start.

        Admin and front desk see everything, employees see their own
        bookings and everyone else sees the appointments they booked.
        """
        if status is not None and status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        query = db.query(Appointment)
        if caller.role == EMPLOYEE_ROLE:
            query = query.filter(Appointment.employee_id == caller.user_id)
        elif not caller.is_admin_like():
            query = query.filter(Appointment.patient_id == caller.user_id)

        if status:
            query = query.filter(Appointment.status == status)
        if start_from:
            query = query.filter(Appointment.start_at >= ensure_naive_utc(start_from))
        if start_to:
            query = query.filter(Appointment.start_at <= ensure_naive_utc(start_to))

        return query.order_by(Appointment.start_at).all()

    @staticmethod
    def cancel_appointment(db: Session, caller: CallerContext, appointment_id: int) -> Appointment:
        """
        Cancel an appointment.

        Only the booking owner or admin-like callers may cancel. Cancelling an
        already cancelled appointment returns it unchanged.

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller may not cancel it
        """
        appointment = AppointmentService._get_appointment(db, appointment_id)

        if not (caller.is_admin_like() or appointment.patient_id == caller.user_id):
            raise ForbiddenError("Only the owner, admin or front desk can cancel")

        if appointment.status == "cancelled":
            logger.info(f"Appointment {appointment_id} already cancelled, skipping")
            return appointment

        appointment.status = "cancelled"
        appointment.cancelled_at = utc_now()
        db.commit()
        db.refresh(appointment)

        logger.info(f"Appointment {appointment_id} cancelled by user {caller.user_id}")
        return appointment

    @staticmethod
    def update_appointment_status(
        db: Session,
        caller: CallerContext,
        appointment_id: int,
        new_status: str
    ) -> Appointment:
        """
        Change an appointment's status.

        Allowed for the assigned employee and admin-like callers. Moving an
        appointment back to 'scheduled' re-runs the conflict check, since its
        interval would start blocking the employee again.

        Raises:
            ValidationError: If new_status is not a known status
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller may not change it
            ConflictError: If re-scheduling would overlap another appointment
        """
        if new_status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Invalid status: {new_status}")

        appointment = AppointmentService._get_appointment(db, appointment_id)

        if not (caller.is_admin_like() or appointment.employee_id == caller.user_id):
            raise ForbiddenError("Only the assigned employee, admin or front desk can change status")

        if appointment.status == new_status:
            return appointment

        if new_status == "scheduled":
            try:
                AppointmentService._lock_employee(db, appointment.employee_id)
                SchedulingConflictService.ensure_no_conflict(
                    db, appointment.employee_id, appointment.start_at,
                    appointment.duration_minutes, exclude_appointment_id=appointment.id
                )
                appointment.status = "scheduled"
                appointment.cancelled_at = None
                AppointmentService._commit_scheduled(db, appointment, "status change")
            except (ValidationError, ConflictError):
                db.rollback()
                raise
        else:
            appointment.status = new_status
            if new_status == "cancelled":
                appointment.cancelled_at = utc_now()
            db.commit()
            db.refresh(appointment)

        logger.info(f"Appointment {appointment_id} status -> {new_status} by user {caller.user_id}")
        return appointment

    @staticmethod
    def reschedule_appointment(
        db: Session,
        caller: CallerContext,
        appointment_id: int,
        new_start_at: datetime,
        new_duration_minutes: Optional[int] = None
    ) -> Appointment:
        """
        Move a scheduled appointment to a new start (and optionally a new length).

        The appointment's own current interval never conflicts with the move.

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller is not the owner, the employee or admin-like
            ValidationError: If the appointment is no longer scheduled
            ConflictError: If the new interval overlaps another appointment
        """
        appointment = AppointmentService._get_appointment(db, appointment_id)

        if not (
            caller.is_admin_like()
            or appointment.patient_id == caller.user_id
            or appointment.employee_id == caller.user_id
        ):
            raise ForbiddenError("Only the owner, assigned employee, admin or front desk can reschedule")

        if not appointment.is_scheduled:
            raise ValidationError(f"Cannot reschedule a {appointment.status} appointment")

        duration = new_duration_minutes if new_duration_minutes is not None else appointment.duration_minutes
        if duration <= 0:
            raise ValidationError("Duration must be positive")

        new_start = to_naive_utc(new_start_at)
        old_start = appointment.start_at

        try:
            AppointmentService._lock_employee(db, appointment.employee_id)
            SchedulingConflictService.ensure_no_conflict(
                db, appointment.employee_id, new_start, duration,
                exclude_appointment_id=appointment.id
            )
            appointment.start_at = new_start
            appointment.duration_minutes = duration
            AppointmentService._commit_scheduled(db, appointment, "reschedule")
        except (ValidationError, ConflictError):
            db.rollback()
            raise

        logger.info(f"Rescheduled appointment {appointment_id} from {old_start} to {new_start}")
        return appointment

    @staticmethod
    def resolve_schedule_employee(caller: CallerContext, employee_id: Optional[int]) -> int:
        """
        Whose schedule the caller is asking for.

        Employees always get their own. Admin and front desk must name the employee.
        """
        if caller.role == EMPLOYEE_ROLE:
            return caller.user_id
        if caller.is_admin_like():
            if employee_id is None:
                raise ValidationError("Admin or front desk must provide an employee id")
            return employee_id
        raise ForbiddenError("Employees only")

    @staticmethod
    def resolve_schedule_window(
        start_from: Optional[datetime],
        start_to: Optional[datetime]
    ) -> Tuple[datetime, datetime]:
        """Schedule window, defaulting to today 00:00 UTC plus seven days."""
        window_start = ensure_naive_utc(start_from) or datetime.combine(utc_now().date(), time.min)
        window_end = ensure_naive_utc(start_to) or window_start + timedelta(days=DEFAULT_SCHEDULE_WINDOW_DAYS)
        if window_end < window_start:
            raise ValidationError("'from' must not be after 'to'")
        return window_start, window_end

    @staticmethod
    def list_employee_schedule(
        db: Session,
        caller: CallerContext,
        employee_id: Optional[int] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None
    ) -> Dict[date_type, List[Appointment]]:
        """
        Appointments of one employee in a window, grouped by calendar day.

        Employees always see their own schedule. Admin and front desk must name
        the employee. The window defaults to today 00:00 plus seven days.

        Returns:
            Ordered mapping of day -> appointments starting that day (by start time)
        """
        target_id = AppointmentService.resolve_schedule_employee(caller, employee_id)
        window_start, window_end = AppointmentService.resolve_schedule_window(start_from, start_to)

        appointments = db.query(Appointment).filter(
            Appointment.employee_id == target_id,
            Appointment.start_at >= window_start,
            Appointment.start_at <= window_end,
        ).order_by(Appointment.start_at).all()

        grouped: Dict[date_type, List[Appointment]] = OrderedDict()
        for appointment in appointments:
            grouped.setdefault(appointment.start_at.date(), []).append(appointment)
        return grouped
