"""
Shared types for availability-related functionality.

This module contains the request-scoped values produced by the availability
grid builder. None of them are persisted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


@dataclass
class Slot:
    """
    One fixed-duration slot of an employee's working day.

    status is one of: available, holiday, maintenance, leave, booked.
    """
    start: datetime
    end: datetime
    status: str = "available"
    appointment_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "status": self.status,
            "appointment_id": self.appointment_id,
        }


@dataclass
class EmployeeSlotGrid:
    """All slots of one employee on one day (empty when the employee does not work that weekday)."""
    employee_id: int
    employee_name: str
    slots: List[Slot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "name": self.employee_name,
            "slots": [slot.to_dict() for slot in self.slots],
        }


@dataclass
class DayGrid:
    """Availability of every requested employee on one calendar day."""
    date: date
    employees: List[EmployeeSlotGrid] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "employees": [grid.to_dict() for grid in self.employees],
        }
