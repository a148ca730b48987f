"""
Leave model representing an employee's time off.

A regular leave blocks the continuous interval [start_at, end_at). A partial
leave blocks only the partial_start_time..partial_end_time window on each
calendar day the leave spans (e.g. every afternoon for a week).
"""

from datetime import date as date_type, datetime, time, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import String, DateTime, Time, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH
from utils.interval_utils import intervals_overlap


class Leave(Base):
    """Employee-specific unavailability period."""

    __tablename__ = "leaves"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    employee_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    start_at: Mapped[datetime] = mapped_column(DateTime)
    end_at: Mapped[datetime] = mapped_column(DateTime)
    reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    partial: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    partial_start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    partial_end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    employee = relationship("User", back_populates="leaves", foreign_keys=[employee_id])

    __table_args__ = (
        CheckConstraint('start_at <= end_at', name='check_leave_range'),
        Index('idx_leaves_employee_range', 'employee_id', 'start_at', 'end_at'),
    )

    def blocked_intervals_on(self, day: date_type) -> List[Tuple[datetime, datetime]]:
        """
        Intervals this leave blocks on a given calendar day.

        Returns:
            Zero or one (start, end) pair, clipped to the day
        """
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)

        partial_start, partial_end = self.partial_start_time, self.partial_end_time
        if self.partial and partial_start is not None and partial_end is not None:
            if not (self.start_at.date() <= day <= self.end_at.date()):
                return []
            return [(datetime.combine(day, partial_start), datetime.combine(day, partial_end))]

        if not intervals_overlap(self.start_at, self.end_at, day_start, day_end):
            return []
        return [(max(self.start_at, day_start), min(self.end_at, day_end))]

    def __repr__(self) -> str:
        return f"<Leave(employee_id={self.employee_id}, {self.start_at}-{self.end_at}, partial={self.partial})>"
