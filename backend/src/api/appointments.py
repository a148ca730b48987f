# pyright: reportMissingTypeStubs=false
"""
Appointment Management API endpoints.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.dependencies import CallerContext, get_current_caller
from auth.permissions import require_staff
from core.constants import MAX_NOTES_LENGTH
from core.database import get_db
from core.exceptions import SchedulingError
from services import AppointmentService
from api.responses import AppointmentResponse, AppointmentListResponse, EmployeeScheduleResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== Request Models =====

class AppointmentCreateRequest(BaseModel):
    """Request model for booking an appointment."""
    employee_id: int
    start_at: datetime
    duration_minutes: Optional[int] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    patient_id: Optional[int] = Field(None, description="Book on behalf of this user (admin or front desk only)")


class AppointmentRescheduleRequest(BaseModel):
    """Request model for moving an appointment."""
    start_at: datetime
    duration_minutes: Optional[int] = Field(None, gt=0)


class AppointmentStatusRequest(BaseModel):
    status: str = Field(..., description="scheduled, completed or cancelled")


# ===== Endpoints =====

@router.post("", summary="Book an appointment", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreateRequest,
    current_caller: CallerContext = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """
    Book an appointment with an employee.

    Returns 409 if the time overlaps another scheduled appointment of that employee.
    """
    try:
        appointment = AppointmentService.create_appointment(
            db,
            current_caller,
            employee_id=request.employee_id,
            start_at=request.start_at,
            duration_minutes=request.duration_minutes,
            reason=request.reason,
            patient_id=request.patient_id,
        )
        return AppointmentResponse.from_model(appointment)
    except (HTTPException, SchedulingError):
        raise
    except Exception as e:
        logger.exception(f"Failed to create appointment: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create appointment"
        )


@router.get("", summary="List appointments visible to the caller")
async def list_appointments(
    appointment_status: Optional[str] = Query(None, alias="status"),
    start_from: Optional[datetime] = Query(None, alias="from"),
    start_to: Optional[datetime] = Query(None, alias="to"),
    current_caller: CallerContext = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> AppointmentListResponse:
    appointments = AppointmentService.list_appointments(
        db, current_caller, status=appointment_status, start_from=start_from, start_to=start_to
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_model(a) for a in appointments]
    )


@router.get("/employee/schedule", summary="Employee schedule grouped by day")
async def get_employee_schedule(
    employee: Optional[int] = Query(None, description="Required for admin and front desk"),
    start_from: Optional[datetime] = Query(None, alias="from"),
    start_to: Optional[datetime] = Query(None, alias="to"),
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db)
) -> EmployeeScheduleResponse:
    """
    Get an employee's appointments between from and to (default: today plus seven days).

    Employees always get their own schedule.
    """
    employee_id = AppointmentService.resolve_schedule_employee(current_caller, employee)
    window_start, window_end = AppointmentService.resolve_schedule_window(start_from, start_to)
    grouped = AppointmentService.list_employee_schedule(
        db, current_caller, employee_id=employee_id, start_from=window_start, start_to=window_end
    )

    return EmployeeScheduleResponse(
        employee_id=employee_id,
        start_from=window_start,
        start_to=window_end,
        schedule={
            day.isoformat(): [AppointmentResponse.from_model(a) for a in appointments]
            for day, appointments in grouped.items()
        },
    )


@router.get("/{appointment_id}", summary="Get an appointment")
async def get_appointment(
    appointment_id: int,
    current_caller: CallerContext = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    appointment = AppointmentService.get_appointment(db, current_caller, appointment_id)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/reschedule", summary="Reschedule an appointment")
async def reschedule_appointment(
    appointment_id: int,
    request: AppointmentRescheduleRequest,
    current_caller: CallerContext = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """
    Move a scheduled appointment. Its own current slot never counts as a conflict.
    """
    try:
        appointment = AppointmentService.reschedule_appointment(
            db, current_caller, appointment_id, request.start_at, request.duration_minutes
        )
        return AppointmentResponse.from_model(appointment)
    except (HTTPException, SchedulingError):
        raise
    except Exception as e:
        logger.exception(f"Failed to reschedule appointment {appointment_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reschedule appointment"
        )


@router.patch("/{appointment_id}/cancel", summary="Cancel an appointment")
async def cancel_appointment(
    appointment_id: int,
    current_caller: CallerContext = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """Cancel an appointment (owner, admin or front desk). Cancelling twice is harmless."""
    appointment = AppointmentService.cancel_appointment(db, current_caller, appointment_id)
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}/status", summary="Change appointment status")
async def update_appointment_status(
    appointment_id: int,
    request: AppointmentStatusRequest,
    current_caller: CallerContext = Depends(get_current_caller),
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    appointment = AppointmentService.update_appointment_status(
        db, current_caller, appointment_id, request.status
    )
    return AppointmentResponse.from_model(appointment)
