"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints.
"""

from .availability_service import AvailabilityService
from .scheduling_conflict_service import SchedulingConflictService
from .appointment_service import AppointmentService
from .schedule_constraint_service import ScheduleConstraintService
from .bed_task_service import BedTaskService
from .task_timer_service import TaskTimerService

__all__ = [
    "AvailabilityService",
    "SchedulingConflictService",
    "AppointmentService",
    "ScheduleConstraintService",
    "BedTaskService",
    "TaskTimerService",
]
