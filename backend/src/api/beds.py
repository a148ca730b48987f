# pyright: reportMissingTypeStubs=false
"""
Bed and bed task API endpoints.

Task CRUD goes through BedTaskService; countdown actions go through the
process-wide TaskTimerService. Every change is published to the bed's
employees and the task's creator over the realtime channel.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from auth.dependencies import CallerContext
from auth.permissions import require_staff
from core.constants import MAX_NOTES_LENGTH, MAX_STRING_LENGTH, MAX_TITLE_LENGTH
from core.database import get_db
from services import BedTaskService
from services.realtime_notifier import RealtimeNotifier, get_connection_manager
from services.task_timer_service import TaskTimerService, get_task_timer_service
from shared_types.task_events import TaskEvent, TaskEventType
from api.responses import BedTaskResponse, BedTaskListResponse, TaskActionResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== Request/Response Models =====

class BedTaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    duration_minutes: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    patient_name: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)


class BedTaskUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    duration_minutes: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    patient_name: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)


class BedResponse(BaseModel):
    id: int
    clinic_id: int
    name: str
    description: Optional[str] = None
    employee_ids: List[int]


def get_notifier() -> RealtimeNotifier:
    """Dependency returning the notifier used for task CRUD events."""
    return get_connection_manager()


# ===== Beds =====

@router.get("/clinic/{clinic_id}", summary="List beds of a clinic")
async def list_beds(
    clinic_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db)
) -> List[BedResponse]:
    return [
        BedResponse(
            id=bed.id,
            clinic_id=bed.clinic_id,
            name=bed.name,
            description=bed.description,
            employee_ids=sorted(bed.employee_ids),
        )
        for bed in BedTaskService.list_beds_for_clinic(db, clinic_id)
    ]


# ===== Bed tasks =====

@router.get("/{bed_id}/tasks", summary="List tasks of a bed")
async def list_bed_tasks(
    bed_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db)
) -> BedTaskListResponse:
    tasks = BedTaskService.list_tasks_for_bed(db, bed_id)
    return BedTaskListResponse(tasks=[task.to_payload() for task in tasks])


@router.post("/{bed_id}/tasks", summary="Create a bed task", status_code=status.HTTP_201_CREATED)
async def create_bed_task(
    bed_id: int,
    request: BedTaskCreateRequest,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier)
) -> BedTaskResponse:
    task = BedTaskService.create_task(
        db, current_caller, bed_id,
        title=request.title,
        duration_minutes=request.duration_minutes,
        notes=request.notes,
        patient_name=request.patient_name,
    )
    payload = task.to_payload()
    await notifier.notify(
        BedTaskService.get_task_recipients(db, task),
        TaskEvent(TaskEventType.BED_TASK_CREATED, task.id, task=payload)
    )
    return BedTaskResponse(task=payload)


@router.put("/tasks/{task_id}", summary="Update a bed task")
async def update_bed_task(
    task_id: int,
    request: BedTaskUpdateRequest,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    notifier: RealtimeNotifier = Depends(get_notifier)
) -> BedTaskResponse:
    BedTaskService.ensure_can_operate(db, current_caller, task_id)
    task = BedTaskService.update_task(
        db, task_id,
        title=request.title,
        notes=request.notes,
        patient_name=request.patient_name,
        duration_minutes=request.duration_minutes,
    )
    payload = task.to_payload()
    await notifier.notify(
        BedTaskService.get_task_recipients(db, task),
        TaskEvent(TaskEventType.BED_TASK_UPDATED, task.id, task=payload)
    )
    return BedTaskResponse(task=payload)


# ===== Countdown actions =====

def _action_response(payload: Optional[Dict[str, Any]]) -> TaskActionResponse:
    return TaskActionResponse(success=True, task=payload)


@router.post("/tasks/{task_id}/start", summary="Start a task countdown")
async def start_task(
    task_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    timers: TaskTimerService = Depends(get_task_timer_service)
) -> TaskActionResponse:
    BedTaskService.ensure_can_operate(db, current_caller, task_id)
    # Timer writes use their own sessions
    db.close()
    return _action_response(await timers.start(task_id))


@router.post("/tasks/{task_id}/pause", summary="Pause a task countdown")
async def pause_task(
    task_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    timers: TaskTimerService = Depends(get_task_timer_service)
) -> TaskActionResponse:
    BedTaskService.ensure_can_operate(db, current_caller, task_id)
    db.close()
    return _action_response(await timers.pause(task_id))


@router.post("/tasks/{task_id}/resume", summary="Resume a paused task")
async def resume_task(
    task_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    timers: TaskTimerService = Depends(get_task_timer_service)
) -> TaskActionResponse:
    BedTaskService.ensure_can_operate(db, current_caller, task_id)
    db.close()
    return _action_response(await timers.resume(task_id))


@router.post("/tasks/{task_id}/stop", summary="Cancel a task")
async def stop_task(
    task_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    timers: TaskTimerService = Depends(get_task_timer_service)
) -> TaskActionResponse:
    BedTaskService.ensure_can_operate(db, current_caller, task_id)
    db.close()
    return _action_response(await timers.stop(task_id))


@router.post("/tasks/{task_id}/complete", summary="Mark a task completed")
async def complete_task(
    task_id: int,
    current_caller: CallerContext = Depends(require_staff()),
    db: Session = Depends(get_db),
    timers: TaskTimerService = Depends(get_task_timer_service)
) -> TaskActionResponse:
    BedTaskService.ensure_can_operate(db, current_caller, task_id)
    db.close()
    return _action_response(await timers.complete(task_id))
