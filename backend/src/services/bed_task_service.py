"""
Bed task service for creating, editing and listing timed bed tasks.

Countdown state changes (start, pause, resume, stop, complete) live in
services.task_timer_service; this module owns everything else about a task
and decides who may operate on it and who hears about it.
"""

import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from auth.dependencies import CallerContext
from core.constants import MAX_NOTES_LENGTH, MAX_TITLE_LENGTH
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models import Bed, BedTask

logger = logging.getLogger(__name__)


class BedTaskService:
    """Service class for bed task operations."""

    @staticmethod
    def get_bed(db: Session, bed_id: int) -> Bed:
        bed = db.query(Bed).filter(Bed.id == bed_id).first()
        if not bed:
            raise NotFoundError("Bed not found")
        return bed

    @staticmethod
    def get_task(db: Session, task_id: int) -> BedTask:
        task = db.query(BedTask).filter(BedTask.id == task_id).first()
        if not task:
            raise NotFoundError("Task not found")
        return task

    @staticmethod
    def list_beds_for_clinic(db: Session, clinic_id: int) -> List[Bed]:
        return db.query(Bed).filter(Bed.clinic_id == clinic_id).order_by(Bed.id).all()

    @staticmethod
    def _validate_fields(
        title: Optional[str],
        duration_minutes: Optional[int],
        notes: Optional[str]
    ) -> None:
        if title is not None and (not title.strip() or len(title) > MAX_TITLE_LENGTH):
            raise ValidationError("Title is required and must be at most 200 characters")
        if duration_minutes is not None and duration_minutes <= 0:
            raise ValidationError("Duration must be a positive number of minutes")
        if notes is not None and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError("Notes are too long")

    @staticmethod
    def create_task(
        db: Session,
        caller: CallerContext,
        bed_id: int,
        title: str,
        duration_minutes: int,
        notes: Optional[str] = None,
        patient_name: Optional[str] = None
    ) -> BedTask:
        """
        Create a pending task on a bed.

        The countdown starts full (duration * 60 seconds) and only runs once
        the task is started.

        Raises:
            ValidationError: If title or duration is missing or invalid
            NotFoundError: If the bed does not exist
        """
        if not title or duration_minutes is None:
            raise ValidationError("Title and duration are required")
        BedTaskService._validate_fields(title, duration_minutes, notes)

        bed = BedTaskService.get_bed(db, bed_id)

        task = BedTask(
            bed_id=bed.id,
            created_by_id=caller.user_id,
            patient_name=patient_name,
            title=title.strip(),
            notes=notes,
            duration_minutes=duration_minutes,
            remaining_secs=duration_minutes * 60,
            status="pending",
        )
        db.add(task)
        db.commit()
        db.refresh(task)

        logger.info(f"Created bed task {task.id} on bed {bed_id} by user {caller.user_id}")
        return task

    @staticmethod
    def update_task(
        db: Session,
        task_id: int,
        title: Optional[str] = None,
        notes: Optional[str] = None,
        patient_name: Optional[str] = None,
        duration_minutes: Optional[int] = None
    ) -> BedTask:
        """
        Edit a task's descriptive fields and, while it is not counting down, its duration.

        A pending task restarts from the new full duration; a paused task
        keeps its remaining time, capped at the new total.

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If a field is invalid, or the duration changes
                while the task is running or already finished
        """
        BedTaskService._validate_fields(title, duration_minutes, notes)
        task = BedTaskService.get_task(db, task_id)

        if duration_minutes is not None and duration_minutes != task.duration_minutes:
            if task.status not in ("pending", "paused"):
                raise ValidationError(f"Cannot change duration of a {task.status} task")
            task.duration_minutes = duration_minutes
            if task.status == "pending":
                task.remaining_secs = task.total_secs
            else:
                task.remaining_secs = min(task.initial_remaining_secs(), task.total_secs)

        if title is not None:
            task.title = title.strip()
        if notes is not None:
            task.notes = notes
        if patient_name is not None:
            task.patient_name = patient_name

        db.commit()
        db.refresh(task)
        logger.info(f"Updated bed task {task_id}")
        return task

    @staticmethod
    def list_tasks_for_bed(db: Session, bed_id: int) -> List[BedTask]:
        """All tasks of a bed, newest first."""
        BedTaskService.get_bed(db, bed_id)
        return db.query(BedTask).filter(
            BedTask.bed_id == bed_id
        ).order_by(BedTask.created_at.desc(), BedTask.id.desc()).all()

    @staticmethod
    def get_task_recipients(db: Session, task: BedTask) -> Set[int]:
        """Users who receive live events for a task: the bed's employees plus the creator."""
        recipients: Set[int] = {task.created_by_id}
        bed = db.query(Bed).filter(Bed.id == task.bed_id).first()
        if bed:
            recipients |= bed.employee_ids
        return recipients

    @staticmethod
    def can_operate_task(db: Session, caller: CallerContext, task: BedTask) -> bool:
        """Admin and front desk, employees assigned to the bed, and the task's creator."""
        if caller.is_admin_like() or task.created_by_id == caller.user_id:
            return True
        bed = db.query(Bed).filter(Bed.id == task.bed_id).first()
        return bool(bed and caller.user_id in bed.employee_ids)

    @staticmethod
    def ensure_can_operate(db: Session, caller: CallerContext, task_id: int) -> BedTask:
        """
        Load a task and check the caller may operate on it.

        Raises:
            NotFoundError: If the task does not exist
            ForbiddenError: If the caller may not operate on it
        """
        task = BedTaskService.get_task(db, task_id)
        if not BedTaskService.can_operate_task(db, caller, task):
            raise ForbiddenError("Not allowed to operate on this task")
        return task
