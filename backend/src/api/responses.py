"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from models import Appointment


class AppointmentResponse(BaseModel):
    """Response model for a single appointment."""
    id: int
    patient_id: int
    employee_id: int
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    reason: Optional[str] = None
    status: str
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            employee_id=appointment.employee_id,
            start_at=appointment.start_at,
            end_at=appointment.end_at,
            duration_minutes=appointment.duration_minutes,
            reason=appointment.reason,
            status=appointment.status,
            cancelled_at=appointment.cancelled_at,
            created_at=appointment.created_at,
        )


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    appointments: List[AppointmentResponse]


class EmployeeScheduleResponse(BaseModel):
    """Response model for an employee's schedule grouped by day (YYYY-MM-DD keys)."""
    employee_id: int
    start_from: datetime
    start_to: datetime
    schedule: Dict[str, List[AppointmentResponse]]


class SlotResponse(BaseModel):
    """Response model for one availability slot."""
    start: datetime
    end: datetime
    status: str
    appointment_id: Optional[int] = None


class EmployeeSlotsResponse(BaseModel):
    employee_id: int
    name: str
    slots: List[SlotResponse]


class CalendarDayResponse(BaseModel):
    date: str
    employees: List[EmployeeSlotsResponse]


class CalendarViewResponse(BaseModel):
    """Response model for the month calendar view."""
    clinic_id: int
    year: int
    month: int
    slot_duration_minutes: int
    days: List[CalendarDayResponse]


class BedTaskResponse(BaseModel):
    """Response model wrapping a bed task payload (camelCase keys, as sent over the realtime channel)."""
    task: Dict[str, Any]


class BedTaskListResponse(BaseModel):
    tasks: List[Dict[str, Any]]


class TaskActionResponse(BaseModel):
    """Response model for countdown actions; task is None when the action changed nothing."""
    success: bool
    task: Optional[Dict[str, Any]] = None
