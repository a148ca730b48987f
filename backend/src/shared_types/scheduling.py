"""
Shared types for appointment conflict checks.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass
class ConflictResult:
    """Outcome of checking a proposed (employee, start, duration) against existing bookings."""
    employee_id: int
    start: datetime
    end: datetime
    conflicting_appointment_ids: List[int] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicting_appointment_ids)
