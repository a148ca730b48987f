"""
Clinic model representing a physical therapy clinic.

A clinic is the top-level entity that owns employees, beds, holidays and
maintenance windows. Clinic master data is managed outside the scheduling
core; this model only exposes what availability and bed tasks read.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Clinic(Base):
    """Clinic entity owning employees, beds and clinic-wide closures."""

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the clinic."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the clinic."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive clinics are hidden from availability queries."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    users = relationship("User", back_populates="clinic")
    """Members of this clinic (employees, admins, front desk)."""

    beds = relationship("Bed", back_populates="clinic", cascade="all, delete-orphan")
    holidays = relationship("Holiday", back_populates="clinic", cascade="all, delete-orphan")
    maintenance_windows = relationship("MaintenanceWindow", back_populates="clinic", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Clinic(id={self.id}, name='{self.name}')>"
