"""
Scheduling conflict service.

Checks a proposed (employee, start, duration) against the employee's other
scheduled appointments. Only appointments starting inside a bounded search
window around the proposed start are inspected.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from core.config import CONFLICT_WINDOW_MODE
from core.constants import CONFLICT_SEARCH_WINDOW_MINUTES
from core.exceptions import ConflictError, ValidationError
from shared_types.scheduling import ConflictResult
from utils.appointment_queries import (
    get_longest_scheduled_duration,
    get_scheduled_appointments_starting_between,
)
from utils.interval_utils import interval_end, overlaps

logger = logging.getLogger(__name__)

WINDOW_MODE_WIDENED = "widened"
WINDOW_MODE_FIXED = "fixed"


class SchedulingConflictService:
    """Service class for appointment overlap checks."""

    @staticmethod
    def _search_window(
        db: Session,
        employee_id: int,
        candidate_start: datetime,
        candidate_duration: int,
        exclude_appointment_id: Optional[int],
        window_mode: str
    ) -> Tuple[datetime, datetime]:
        """
        Bounds on the start time of appointments that could overlap the candidate.

        The fixed window looks one hour either side. The widened window also
        reaches back by the employee's longest booking and forward by the
        candidate's own length, so long appointments are never missed.
        """
        base = CONFLICT_SEARCH_WINDOW_MINUTES
        if window_mode == WINDOW_MODE_FIXED:
            return (
                candidate_start - timedelta(minutes=base),
                candidate_start + timedelta(minutes=base),
            )

        longest = get_longest_scheduled_duration(db, employee_id, exclude_appointment_id)
        return (
            candidate_start - timedelta(minutes=max(base, longest)),
            candidate_start + timedelta(minutes=max(base, candidate_duration)),
        )

    @staticmethod
    def check_conflict(
        db: Session,
        employee_id: int,
        candidate_start: datetime,
        candidate_duration: int,
        exclude_appointment_id: Optional[int] = None,
        window_mode: Optional[str] = None
    ) -> ConflictResult:
        """
        Find scheduled appointments of the employee that overlap the candidate.

        Args:
            db: Database session
            employee_id: Employee being booked
            candidate_start: Proposed start (naive UTC)
            candidate_duration: Proposed length in minutes
            exclude_appointment_id: Appointment to ignore (the one being rescheduled)
            window_mode: "widened" or "fixed"; defaults to CONFLICT_WINDOW_MODE

        Returns:
            ConflictResult listing every overlapping appointment id
        """
        if candidate_duration <= 0:
            raise ValidationError("Duration must be positive")

        mode = window_mode or CONFLICT_WINDOW_MODE
        if mode not in (WINDOW_MODE_WIDENED, WINDOW_MODE_FIXED):
            raise ValueError(f"Unknown conflict window mode: {mode}")
        window_start, window_end = SchedulingConflictService._search_window(
            db, employee_id, candidate_start, candidate_duration, exclude_appointment_id, mode
        )

        candidates = get_scheduled_appointments_starting_between(
            db, employee_id, window_start, window_end, exclude_appointment_id
        )

        result = ConflictResult(
            employee_id=employee_id,
            start=candidate_start,
            end=interval_end(candidate_start, candidate_duration),
        )
        for appointment in candidates:
            if overlaps(candidate_start, candidate_duration, appointment.start_at, appointment.duration_minutes):
                result.conflicting_appointment_ids.append(appointment.id)

        return result

    @staticmethod
    def ensure_no_conflict(
        db: Session,
        employee_id: int,
        candidate_start: datetime,
        candidate_duration: int,
        exclude_appointment_id: Optional[int] = None,
        window_mode: Optional[str] = None
    ) -> None:
        """
        Raise ConflictError if the candidate overlaps another scheduled appointment.
        """
        result = SchedulingConflictService.check_conflict(
            db, employee_id, candidate_start, candidate_duration,
            exclude_appointment_id=exclude_appointment_id,
            window_mode=window_mode,
        )
        if result.has_conflict:
            logger.info(
                f"Conflict for employee {employee_id} at {candidate_start} "
                f"({candidate_duration}min): {result.conflicting_appointment_ids}"
            )
            raise ConflictError(
                "Time slot conflicts with another appointment",
                extra={"conflicting_appointment_ids": result.conflicting_appointment_ids},
            )
