# pyright: reportMissingTypeStubs=false
"""
Calendar API endpoints.

Month availability grid plus management of the records that block
availability (holidays, maintenance windows, leaves). Admin and front desk only.
"""

import logging
from datetime import datetime, date as date_type, time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from auth.dependencies import CallerContext
from auth.permissions import require_admin_like
from core.constants import DEFAULT_SLOT_DURATION_MINUTES, MAX_TITLE_LENGTH, MAX_STRING_LENGTH
from core.database import get_db
from core.exceptions import SchedulingError
from models import Leave
from services import AvailabilityService, ScheduleConstraintService
from utils.datetime_utils import parse_hhmm
from api.responses import (
    CalendarViewResponse, CalendarDayResponse, EmployeeSlotsResponse, SlotResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== Request/Response Models =====

class HolidayCreateRequest(BaseModel):
    clinic_id: int
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    date: date_type
    recurring_yearly: bool = False


class HolidayResponse(BaseModel):
    id: int
    clinic_id: int
    title: str
    date: date_type
    recurring_yearly: bool


class MaintenanceCreateRequest(BaseModel):
    clinic_id: int
    title: Optional[str] = Field(None, max_length=MAX_TITLE_LENGTH)
    start_at: datetime
    end_at: datetime
    resource: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)


class MaintenanceResponse(BaseModel):
    id: int
    clinic_id: int
    title: Optional[str] = None
    start_at: datetime
    end_at: datetime
    resource: Optional[str] = None


class LeaveCreateRequest(BaseModel):
    employee_id: int
    start_at: datetime
    end_at: datetime
    reason: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)
    partial: bool = False
    partial_start_time: Optional[str] = Field(None, description="HH:MM")
    partial_end_time: Optional[str] = Field(None, description="HH:MM")

    @field_validator('partial_start_time', 'partial_end_time')
    @classmethod
    def validate_hhmm(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_hhmm(v)
        return v

    @model_validator(mode='after')
    def validate_partial(self) -> 'LeaveCreateRequest':
        if self.partial and (not self.partial_start_time or not self.partial_end_time):
            raise ValueError("Partial leave requires partial_start_time and partial_end_time")
        return self


class LeaveResponse(BaseModel):
    id: int
    employee_id: int
    start_at: datetime
    end_at: datetime
    reason: Optional[str] = None
    partial: bool
    partial_start_time: Optional[time] = None
    partial_end_time: Optional[time] = None


# ===== Availability grid =====

@router.get("/view", summary="Month availability grid", response_model=CalendarViewResponse)
async def get_calendar_view(
    clinic: int = Query(..., description="Clinic ID"),
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    employee: Optional[List[int]] = Query(None, description="Employee ID(s); all active employees when omitted"),
    slot_duration: int = Query(DEFAULT_SLOT_DURATION_MINUTES, alias="slotDuration", gt=0),
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> CalendarViewResponse:
    """
    Get every employee's slots for every day of a month.

    Slot statuses: available, holiday, maintenance, leave, booked.
    """
    try:
        days = AvailabilityService.build_month(db, clinic, employee, year, month, slot_duration)

        return CalendarViewResponse(
            clinic_id=clinic,
            year=year,
            month=month,
            slot_duration_minutes=slot_duration,
            days=[
                CalendarDayResponse(
                    date=day.date.isoformat(),
                    employees=[
                        EmployeeSlotsResponse(
                            employee_id=grid.employee_id,
                            name=grid.employee_name,
                            slots=[
                                SlotResponse(
                                    start=slot.start,
                                    end=slot.end,
                                    status=slot.status,
                                    appointment_id=slot.appointment_id,
                                )
                                for slot in grid.slots
                            ],
                        )
                        for grid in day.employees
                    ],
                )
                for day in days
            ],
        )
    except (HTTPException, SchedulingError):
        raise
    except Exception as e:
        logger.exception(f"Failed to build calendar view for clinic {clinic}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build calendar view"
        )


# ===== Holidays =====

@router.post("/holidays", summary="Create holiday", status_code=status.HTTP_201_CREATED)
async def create_holiday(
    request: HolidayCreateRequest,
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> HolidayResponse:
    holiday = ScheduleConstraintService.create_holiday(
        db, current_caller, request.clinic_id, request.title, request.date, request.recurring_yearly
    )
    return HolidayResponse(
        id=holiday.id,
        clinic_id=holiday.clinic_id,
        title=holiday.title,
        date=holiday.date,
        recurring_yearly=holiday.recurring_yearly,
    )


@router.get("/holidays", summary="List holidays")
async def list_holidays(
    clinic: int = Query(...),
    year: Optional[int] = Query(None),
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> List[HolidayResponse]:
    return [
        HolidayResponse(
            id=h.id, clinic_id=h.clinic_id, title=h.title, date=h.date, recurring_yearly=h.recurring_yearly
        )
        for h in ScheduleConstraintService.list_holidays(db, clinic, year)
    ]


@router.delete("/holidays/{holiday_id}", summary="Delete holiday")
async def delete_holiday(
    holiday_id: int,
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> dict[str, bool]:
    ScheduleConstraintService.delete_holiday(db, holiday_id)
    return {"success": True}


# ===== Maintenance windows =====

@router.post("/maintenance", summary="Create maintenance window", status_code=status.HTTP_201_CREATED)
async def create_maintenance_window(
    request: MaintenanceCreateRequest,
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> MaintenanceResponse:
    window = ScheduleConstraintService.create_maintenance_window(
        db, current_caller, request.clinic_id, request.start_at, request.end_at,
        title=request.title, resource=request.resource
    )
    return MaintenanceResponse(
        id=window.id,
        clinic_id=window.clinic_id,
        title=window.title,
        start_at=window.start_at,
        end_at=window.end_at,
        resource=window.resource,
    )


@router.get("/maintenance", summary="List maintenance windows")
async def list_maintenance_windows(
    clinic: int = Query(...),
    start_from: Optional[datetime] = Query(None, alias="from"),
    start_to: Optional[datetime] = Query(None, alias="to"),
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> List[MaintenanceResponse]:
    windows = ScheduleConstraintService.list_maintenance_windows(db, clinic, start_from, start_to)
    return [
        MaintenanceResponse(
            id=w.id, clinic_id=w.clinic_id, title=w.title,
            start_at=w.start_at, end_at=w.end_at, resource=w.resource
        )
        for w in windows
    ]


@router.delete("/maintenance/{window_id}", summary="Delete maintenance window")
async def delete_maintenance_window(
    window_id: int,
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> dict[str, bool]:
    ScheduleConstraintService.delete_maintenance_window(db, window_id)
    return {"success": True}


# ===== Leaves =====

def _leave_response(leave: Leave) -> LeaveResponse:
    return LeaveResponse(
        id=leave.id,
        employee_id=leave.employee_id,
        start_at=leave.start_at,
        end_at=leave.end_at,
        reason=leave.reason,
        partial=leave.partial,
        partial_start_time=leave.partial_start_time,
        partial_end_time=leave.partial_end_time,
    )


@router.post("/leaves", summary="Create leave", status_code=status.HTTP_201_CREATED)
async def create_leave(
    request: LeaveCreateRequest,
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> LeaveResponse:
    leave = ScheduleConstraintService.create_leave(
        db, current_caller, request.employee_id, request.start_at, request.end_at,
        reason=request.reason,
        partial=request.partial,
        partial_start_time=parse_hhmm(request.partial_start_time) if request.partial_start_time else None,
        partial_end_time=parse_hhmm(request.partial_end_time) if request.partial_end_time else None,
    )
    return _leave_response(leave)


@router.get("/leaves", summary="List leaves")
async def list_leaves(
    employee: Optional[int] = Query(None),
    start_from: Optional[datetime] = Query(None, alias="from"),
    start_to: Optional[datetime] = Query(None, alias="to"),
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> List[LeaveResponse]:
    return [
        _leave_response(leave)
        for leave in ScheduleConstraintService.list_leaves(db, employee, start_from, start_to)
    ]


@router.delete("/leaves/{leave_id}", summary="Delete leave")
async def delete_leave(
    leave_id: int,
    current_caller: CallerContext = Depends(require_admin_like()),
    db: Session = Depends(get_db)
) -> dict[str, bool]:
    ScheduleConstraintService.delete_leave(db, leave_id)
    return {"success": True}
