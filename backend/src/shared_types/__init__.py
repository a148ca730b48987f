"""
Shared type definitions for the scheduling backend.

This module contains dataclasses and types that are used across multiple services.
"""

from shared_types.availability import Slot, EmployeeSlotGrid, DayGrid
from shared_types.scheduling import ConflictResult
from shared_types.task_events import TaskEvent, TaskEventType

__all__ = ["Slot", "EmployeeSlotGrid", "DayGrid", "ConflictResult", "TaskEvent", "TaskEventType"]
