"""
Appointment model representing a booked session between a patient and an employee.

Appointments are never physically deleted by the scheduling core; cancelling
or completing one only changes its status so the booking history survives.
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import String, Integer, DateTime, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import DEFAULT_APPOINTMENT_DURATION_MINUTES, MAX_NOTES_LENGTH


class Appointment(Base):
    """
    Appointment entity: one employee, one patient, one time interval.

    Invariant: for a fixed employee no two appointments with status
    'scheduled' overlap on [start_at, start_at + duration_minutes). The
    service layer enforces it under a per-employee row lock; the partial
    unique index below turns a lost race on the same start into an
    IntegrityError.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    patient_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """User who owns the booking."""

    employee_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """Employee the appointment is booked with."""

    start_at: Mapped[datetime] = mapped_column(DateTime)
    """Start of the appointment (naive UTC)."""

    duration_minutes: Mapped[int] = mapped_column(Integer, default=DEFAULT_APPOINTMENT_DURATION_MINUTES)

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="scheduled")
    """Valid values: 'scheduled', 'completed', 'cancelled'."""

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    patient = relationship("User", foreign_keys=[patient_id])
    employee = relationship("User", foreign_keys=[employee_id])

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')",
            name='check_valid_appointment_status'
        ),
        CheckConstraint('duration_minutes > 0', name='check_appointment_duration'),
        Index('idx_appointments_employee_start', 'employee_id', 'start_at'),
        Index('idx_appointments_patient', 'patient_id'),
        Index('idx_appointments_status', 'status'),
        # Storage-level guard against two concurrent bookings at the same start
        Index(
            'uq_appointments_employee_start_scheduled',
            'employee_id', 'start_at',
            unique=True,
            postgresql_where=text("status = 'scheduled'"),
            sqlite_where=text("status = 'scheduled'"),
        ),
    )

    @property
    def end_at(self) -> datetime:
        """Exclusive end of the appointment."""
        return self.start_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_scheduled(self) -> bool:
        return self.status == "scheduled"

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, employee_id={self.employee_id}, start_at={self.start_at}, status='{self.status}')>"
