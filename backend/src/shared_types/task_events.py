"""
Realtime events emitted for bed tasks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TaskEventType(str, Enum):
    """Event names as seen by realtime subscribers."""
    TASK_STARTED = "taskStarted"
    TASK_TICK = "taskTick"
    TASK_PAUSED = "taskPaused"
    TASK_STOPPED = "taskStopped"
    TASK_FINISHED = "taskFinished"
    BED_TASK_CREATED = "bedTaskCreated"
    BED_TASK_UPDATED = "bedTaskUpdated"


@dataclass(frozen=True)
class TaskEvent:
    """A lifecycle event for one bed task."""
    type: TaskEventType
    task_id: int
    remaining_secs: Optional[int] = None
    task: Optional[Dict[str, Any]] = None

    def to_message(self) -> Dict[str, Any]:
        """Wire format: {"event": name, "data": {...}}."""
        data: Dict[str, Any] = {"taskId": self.task_id}
        if self.remaining_secs is not None:
            data["remainingSecs"] = self.remaining_secs
        if self.task is not None:
            data["task"] = self.task
        return {"event": self.type.value, "data": data}
