"""
Utility functions for consistent appointment queries.

This module contains reusable query functions so that "scheduled appointment"
lookups are filtered the same way by the availability grid and the conflict
guard.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, Query

from models import Appointment


def filter_scheduled(query: Query[Appointment]) -> Query[Appointment]:
    """Only appointments that still occupy the employee's time."""
    return query.filter(Appointment.status == "scheduled")


def get_scheduled_appointments_starting_between(
    db: Session,
    employee_id: int,
    window_start: datetime,
    window_end: datetime,
    exclude_appointment_id: Optional[int] = None
) -> List[Appointment]:
    """
    Scheduled appointments of an employee whose start lies in [window_start, window_end].

    Args:
        db: Database session
        employee_id: Employee user ID
        window_start: Inclusive lower bound on start_at
        window_end: Inclusive upper bound on start_at
        exclude_appointment_id: Appointment to ignore (the one being rescheduled)

    Returns:
        Appointments ordered by start
    """
    query = filter_scheduled(db.query(Appointment)).filter(
        Appointment.employee_id == employee_id,
        Appointment.start_at >= window_start,
        Appointment.start_at <= window_end,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_at).all()


def get_scheduled_appointments_for_employees(
    db: Session,
    employee_ids: Sequence[int],
    range_start: datetime,
    range_end: datetime
) -> List[Appointment]:
    """
    Scheduled appointments for several employees starting within [range_start, range_end).

    Used by the month grid, which only needs appointments that begin inside
    the month window.
    """
    if not employee_ids:
        return []

    return filter_scheduled(db.query(Appointment)).filter(
        Appointment.employee_id.in_(list(employee_ids)),
        Appointment.start_at >= range_start,
        Appointment.start_at < range_end,
    ).order_by(Appointment.start_at).all()


def get_longest_scheduled_duration(
    db: Session,
    employee_id: int,
    exclude_appointment_id: Optional[int] = None
) -> int:
    """
    Longest duration (minutes) among an employee's scheduled appointments, 0 if none.
    """
    query = db.query(func.max(Appointment.duration_minutes)).filter(
        Appointment.employee_id == employee_id,
        Appointment.status == "scheduled",
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    longest = query.scalar()
    return int(longest or 0)
