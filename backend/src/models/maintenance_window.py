"""
Maintenance window model: a clinic-wide interval during which no slot is bookable.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_TITLE_LENGTH, MAX_STRING_LENGTH


class MaintenanceWindow(Base):
    """Arbitrary sub-day (or multi-day) closure for the whole clinic."""

    __tablename__ = "maintenance_windows"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    title: Mapped[Optional[str]] = mapped_column(String(MAX_TITLE_LENGTH), nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime)
    end_at: Mapped[datetime] = mapped_column(DateTime)

    resource: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional bed/room label for display; the window still blocks the whole clinic."""

    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="maintenance_windows")

    __table_args__ = (
        CheckConstraint('start_at < end_at', name='check_maintenance_range'),
        Index('idx_maintenance_clinic_range', 'clinic_id', 'start_at', 'end_at'),
    )

    def __repr__(self) -> str:
        return f"<MaintenanceWindow(clinic_id={self.clinic_id}, {self.start_at}-{self.end_at})>"
