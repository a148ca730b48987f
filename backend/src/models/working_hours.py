"""
Working hours model for an employee's default weekly schedule.

Each record is the bookable window for one weekday. Employees without a
record for a weekday are unavailable that whole day.
"""

from datetime import time, datetime
from sqlalchemy import Time, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class WorkingHours(Base):
    """
    Bookable time-of-day window for one weekday of an employee.

    Several rows for the same weekday may exist (legacy imports); the
    availability grid uses the first one (lowest id).
    """

    __tablename__ = "working_hours"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    """Reference to the employee."""

    day_of_week: Mapped[int] = mapped_column()
    """Day of the week (0=Monday, 1=Tuesday, ..., 6=Sunday)."""

    start_time: Mapped[time] = mapped_column(Time)
    """Start of the working window."""

    end_time: Mapped[time] = mapped_column(Time)
    """End of the working window (exclusive)."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    user = relationship("User", back_populates="working_hours")

    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='check_working_hours_day'),
        CheckConstraint('start_time < end_time', name='check_working_hours_range'),
        Index('idx_working_hours_user_day', 'user_id', 'day_of_week'),
    )

    def __repr__(self) -> str:
        return f"<WorkingHours(user_id={self.user_id}, day={self.day_of_week}, {self.start_time}-{self.end_time})>"
