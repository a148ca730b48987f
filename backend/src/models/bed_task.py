"""
Bed task model: a timed unit of work performed at a bed.

The countdown itself lives in memory (services.task_timer_service); this
record is the durable state it is reconciled from. remaining_secs is written
on every state change and every few ticks while running.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import String, Integer, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_TITLE_LENGTH, MAX_NOTES_LENGTH, MAX_STRING_LENGTH, BED_TASK_TERMINAL_STATUSES


class BedTask(Base):
    """
    Timed bed task.

    Lifecycle: pending -> running <-> paused, running -> completed (when the
    countdown reaches zero), pending/running/paused -> cancelled. Finished
    tasks are kept as history.
    """

    __tablename__ = "bed_tasks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    bed_id: Mapped[int] = mapped_column(ForeignKey("beds.id", ondelete="CASCADE"))
    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """Employee who scheduled the work."""

    patient_name: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Free-text patient name for walk-in treatments."""

    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH))
    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    duration_minutes: Mapped[int] = mapped_column(Integer)
    remaining_secs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="pending")
    """Valid values: 'pending', 'running', 'paused', 'completed', 'cancelled'."""

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    bed = relationship("Bed", back_populates="tasks")
    created_by = relationship("User")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'running', 'paused', 'completed', 'cancelled')",
            name='check_valid_bed_task_status'
        ),
        CheckConstraint('duration_minutes > 0', name='check_bed_task_duration'),
        CheckConstraint(
            'remaining_secs IS NULL OR (remaining_secs >= 0 AND remaining_secs <= duration_minutes * 60)',
            name='check_bed_task_remaining'
        ),
        Index('idx_bed_tasks_bed_created', 'bed_id', 'created_at'),
        Index('idx_bed_tasks_status', 'status'),
    )

    @property
    def total_secs(self) -> int:
        return self.duration_minutes * 60

    @property
    def is_terminal(self) -> bool:
        return self.status in BED_TASK_TERMINAL_STATUSES

    def initial_remaining_secs(self) -> int:
        """Seconds the countdown should (re)start from."""
        if self.remaining_secs is None:
            return self.total_secs
        return self.remaining_secs

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for realtime events and API responses."""
        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "bedId": self.bed_id,
            "createdBy": self.created_by_id,
            "patientName": self.patient_name,
            "title": self.title,
            "notes": self.notes,
            "durationMins": self.duration_minutes,
            "remainingSecs": self.remaining_secs,
            "status": self.status,
            "startedAt": _iso(self.started_at),
            "pausedAt": _iso(self.paused_at),
            "completedAt": _iso(self.completed_at),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<BedTask(id={self.id}, bed_id={self.bed_id}, status='{self.status}', remaining={self.remaining_secs})>"
