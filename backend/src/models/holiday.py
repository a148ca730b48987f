"""
Holiday model: a whole day on which nobody at the clinic can be booked.
"""

from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import String, Date, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_TITLE_LENGTH


class Holiday(Base):
    """Clinic-wide full-day closure, optionally repeating every year."""

    __tablename__ = "holidays"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH))
    date: Mapped[date_type] = mapped_column(Date)

    recurring_yearly: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """If True the holiday applies to the same month/day of every year."""

    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="holidays")

    __table_args__ = (
        Index('idx_holidays_clinic_date', 'clinic_id', 'date'),
    )

    def applies_to(self, day: date_type) -> bool:
        """Check whether this holiday closes the clinic on `day`."""
        if self.recurring_yearly:
            return (self.date.month, self.date.day) == (day.month, day.day)
        return self.date == day

    def __repr__(self) -> str:
        return f"<Holiday(clinic_id={self.clinic_id}, date={self.date}, recurring={self.recurring_yearly})>"
