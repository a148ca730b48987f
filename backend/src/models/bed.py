"""
Bed model and the bed-to-employee assignment table.

Employees assigned to a bed receive live updates for every task on it.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime, ForeignKey, Table, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH, MAX_NOTES_LENGTH


bed_employees = Table(
    "bed_employees",
    Base.metadata,
    Column("bed_id", ForeignKey("beds.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Bed(Base):
    """Treatment bed at a clinic."""

    __tablename__ = "beds"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name, e.g. "Bed 1"."""

    description: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="beds")
    employees = relationship("User", secondary=bed_employees)
    """Employees allowed to work on (and notified about) this bed."""

    tasks = relationship("BedTask", back_populates="bed", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_beds_clinic', 'clinic_id'),
    )

    @property
    def employee_ids(self) -> set[int]:
        return {employee.id for employee in self.employees}

    def __repr__(self) -> str:
        return f"<Bed(id={self.id}, clinic_id={self.clinic_id}, name='{self.name}')>"
