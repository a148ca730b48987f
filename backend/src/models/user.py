"""
User model for patients and clinic personnel.

A single table holds every account; `role` distinguishes patients ('user'),
treating staff ('employee'), administrators ('admin') and the front desk
('offline', who books on behalf of walk-in patients).
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH, EMPLOYEE_ROLE


class User(Base):
    """Account used as patient, employee, admin or front desk."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[Optional[int]] = mapped_column(ForeignKey("clinics.id"), nullable=True)
    """Clinic the user works at (None for patients)."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    email: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), unique=True)
    role: Mapped[str] = mapped_column(String(20), default="user", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="users")
    working_hours = relationship(
        "WorkingHours",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="WorkingHours.id",
    )
    """Weekly working hours; the first row for a weekday is the effective one."""

    leaves = relationship(
        "Leave",
        back_populates="employee",
        cascade="all, delete-orphan",
        foreign_keys="Leave.employee_id",
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'admin', 'employee', 'offline')",
            name='check_valid_user_role'
        ),
        Index('idx_users_clinic_role', 'clinic_id', 'role'),
    )

    @property
    def is_employee(self) -> bool:
        """Whether this user can take appointments and bed tasks."""
        return self.role == EMPLOYEE_ROLE

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
