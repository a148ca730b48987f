"""
Bed task countdown timers.

Each running bed task owns one APScheduler interval job that ticks once a
second. The in-memory countdown is the live value; the bed_tasks row is the
durable one, written on every state change and every few ticks. All
operations on the same task id are serialized through a per-task lock, while
different tasks run independently.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import timezone
from typing import Any, AsyncIterator, Callable, ContextManager, Dict, List, Optional, Set

from apscheduler.jobstores.base import JobLookupError  # type: ignore
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore
from sqlalchemy.orm import Session

from core.config import TASK_PERSIST_EVERY_TICKS, TASK_RECOVERY_POLICY, TASK_TICK_SECONDS
from core.constants import TASK_SCHEDULER_MAX_INSTANCES
from core.database import get_db_context
from core.exceptions import NotFoundError, ValidationError
from models import BedTask
from services.bed_task_service import BedTaskService
from services.realtime_notifier import RealtimeNotifier, get_connection_manager
from shared_types.task_events import TaskEvent, TaskEventType
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]

RECOVERY_PAUSE = "pause"
RECOVERY_RESUME = "resume"

SHUTDOWN_DRAIN_SECONDS = 5.0


class TaskLockRegistry:
    """
    Keyed asyncio locks, one per task id.

    A lock exists only while someone holds or waits for it, so the registry
    does not grow with the number of tasks ever seen.
    """

    def __init__(self) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}
        self._users: Dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, task_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(task_id, asyncio.Lock())
        self._users[task_id] = self._users.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[task_id] -= 1
            if self._users[task_id] == 0:
                del self._users[task_id]
                del self._locks[task_id]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class Countdown:
    """Live state of one running task."""
    task_id: int
    remaining_secs: int
    recipients: Set[int] = field(default_factory=set)
    ticks: int = 0

    @property
    def job_id(self) -> str:
        return job_id_for(self.task_id)


@dataclass
class _TaskWrite:
    """What a durable write hands back to the async side."""
    remaining_secs: Optional[int]
    recipients: Set[int]
    payload: Dict[str, Any]


def job_id_for(task_id: int) -> str:
    return f"bed_task_{task_id}"


class TaskTimerService:
    """
    Runs the countdowns of bed tasks.

    Database work runs in a worker thread and is awaited before the matching
    event is published, so a subscriber never sees an event for a state that
    is not yet stored.
    """

    def __init__(
        self,
        notifier: RealtimeNotifier,
        session_factory: SessionFactory = get_db_context,
        scheduler: Optional[AsyncIOScheduler] = None,
        tick_seconds: int = TASK_TICK_SECONDS,
        persist_every_ticks: int = TASK_PERSIST_EVERY_TICKS,
        recovery_policy: str = TASK_RECOVERY_POLICY
    ):
        """
        Args:
            notifier: Where task events are published
            session_factory: Context manager yielding a session that commits on exit
            scheduler: Scheduler hosting the tick jobs; a UTC AsyncIOScheduler by default
            tick_seconds: Seconds between ticks (and seconds removed per tick)
            persist_every_ticks: Write remaining_secs to storage every N ticks
            recovery_policy: "pause" or "resume" for tasks found running at startup
        """
        if recovery_policy not in (RECOVERY_PAUSE, RECOVERY_RESUME):
            raise ValueError(f"Unknown task recovery policy: {recovery_policy}")
        self.notifier = notifier
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._session_factory = session_factory
        self._tick_seconds = tick_seconds
        self._persist_every_ticks = max(1, persist_every_ticks)
        self._recovery_policy = recovery_policy
        self._live: Dict[int, Countdown] = {}
        self._locks = TaskLockRegistry()
        self._is_started = False

    # ===== Scheduler lifecycle =====

    def start_scheduler(self) -> None:
        if self._is_started:
            return
        self.scheduler.start()
        self._is_started = True
        logger.info("Task timer scheduler started")

    def is_live(self, task_id: int) -> bool:
        """Whether the task currently has a running countdown in this process."""
        return task_id in self._live

    def live_remaining(self, task_id: int) -> Optional[int]:
        countdown = self._live.get(task_id)
        return countdown.remaining_secs if countdown else None

    @property
    def live_task_ids(self) -> List[int]:
        return sorted(self._live)

    def _add_job(self, countdown: Countdown) -> None:
        self.start_scheduler()
        self.scheduler.add_job(  # type: ignore
            self.tick,
            IntervalTrigger(seconds=self._tick_seconds),
            args=[countdown.task_id],
            id=countdown.job_id,
            name=f"Countdown for bed task {countdown.task_id}",
            max_instances=TASK_SCHEDULER_MAX_INSTANCES,
            coalesce=False,
            replace_existing=True,
        )

    def _remove_job(self, task_id: int) -> None:
        try:
            self.scheduler.remove_job(job_id_for(task_id))  # type: ignore
        except JobLookupError:
            logger.debug(f"No scheduler job for task {task_id}")

    def _drop_live(self, task_id: int) -> None:
        if self._live.pop(task_id, None) is not None:
            self._remove_job(task_id)

    async def _notify(self, recipients: Set[int], event: TaskEvent) -> None:
        try:
            await self.notifier.notify(recipients, event)
        except Exception as e:
            logger.warning(f"Notifier failed for {event.type.value} on task {event.task_id}: {e}")

    # ===== Durable writes (run in a worker thread) =====

    def _load(self, db: Session, task_id: int) -> BedTask:
        task = db.query(BedTask).filter(BedTask.id == task_id).with_for_update().first()
        if not task:
            raise NotFoundError("Task not found")
        return task

    def _write(self, db: Session, task: BedTask) -> _TaskWrite:
        db.flush()
        return _TaskWrite(
            remaining_secs=task.remaining_secs,
            recipients=BedTaskService.get_task_recipients(db, task),
            payload=task.to_payload(),
        )

    def _db_read(self, task_id: int) -> _TaskWrite:
        with self._session_factory() as db:
            return self._write(db, self._load(db, task_id))

    def _db_start(self, task_id: int) -> _TaskWrite:
        with self._session_factory() as db:
            task = self._load(db, task_id)
            if task.is_terminal:
                raise ValidationError(f"Cannot start a {task.status} task")
            task.remaining_secs = task.initial_remaining_secs()
            task.status = "running"
            task.started_at = utc_now()
            task.paused_at = None
            return self._write(db, task)

    def _db_save_remaining(self, task_id: int, remaining_secs: int) -> None:
        with self._session_factory() as db:
            task = self._load(db, task_id)
            task.remaining_secs = remaining_secs

    def _db_finish(self, task_id: int) -> _TaskWrite:
        with self._session_factory() as db:
            task = self._load(db, task_id)
            task.status = "completed"
            task.completed_at = utc_now()
            task.remaining_secs = 0
            return self._write(db, task)

    def _db_pause(self, task_id: int, live_remaining: Optional[int]) -> Optional[_TaskWrite]:
        """Persist a pause; None when there is nothing to pause."""
        with self._session_factory() as db:
            task = self._load(db, task_id)
            if live_remaining is None:
                if task.status != "running":
                    return None
                live_remaining = task.initial_remaining_secs()
            task.status = "paused"
            task.paused_at = utc_now()
            task.remaining_secs = live_remaining
            return self._write(db, task)

    def _db_stop(self, task_id: int) -> Optional[_TaskWrite]:
        with self._session_factory() as db:
            task = self._load(db, task_id)
            if task.is_terminal:
                return None
            task.status = "cancelled"
            task.completed_at = utc_now()
            return self._write(db, task)

    def _db_complete(self, task_id: int) -> Optional[_TaskWrite]:
        with self._session_factory() as db:
            task = self._load(db, task_id)
            if task.is_terminal:
                return None
            task.status = "completed"
            task.completed_at = utc_now()
            task.remaining_secs = 0
            return self._write(db, task)

    def _db_running_task_ids(self) -> List[int]:
        with self._session_factory() as db:
            rows = db.query(BedTask.id).filter(BedTask.status == "running").order_by(BedTask.id).all()
            return [row[0] for row in rows]

    # ===== Operations =====

    async def _start_locked(self, task_id: int) -> Dict[str, Any]:
        if task_id in self._live:
            logger.debug(f"Task {task_id} already counting down, start ignored")
            return (await asyncio.to_thread(self._db_read, task_id)).payload

        write = await asyncio.to_thread(self._db_start, task_id)
        remaining = write.remaining_secs or 0

        await self._notify(write.recipients, TaskEvent(TaskEventType.TASK_STARTED, task_id, remaining_secs=remaining))

        if remaining <= 0:
            finished = await asyncio.to_thread(self._db_finish, task_id)
            await self._notify(finished.recipients, TaskEvent(TaskEventType.TASK_FINISHED, task_id))
            return finished.payload

        countdown = Countdown(task_id=task_id, remaining_secs=remaining, recipients=write.recipients)
        self._live[task_id] = countdown
        self._add_job(countdown)
        logger.info(f"Started countdown for task {task_id} at {remaining}s")
        return write.payload

    async def start(self, task_id: int) -> Dict[str, Any]:
        """
        Start (or restart from stored remaining time) a task's countdown.

        Starting a task that is already counting down changes nothing.

        Returns:
            The task payload after the call

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If the task is completed or cancelled
        """
        async with self._locks.hold(task_id):
            return await self._start_locked(task_id)

    async def tick(self, task_id: int) -> None:
        """Advance a live countdown by one tick. Called by the scheduler job."""
        async with self._locks.hold(task_id):
            countdown = self._live.get(task_id)
            if countdown is None:
                # Job fired after pause/stop removed the countdown
                return

            # A countdown already at zero is retrying a failed finish write
            if countdown.remaining_secs > 0:
                countdown.remaining_secs = max(0, countdown.remaining_secs - self._tick_seconds)
                countdown.ticks += 1

                if countdown.remaining_secs > 0 and countdown.ticks % self._persist_every_ticks == 0:
                    try:
                        await asyncio.to_thread(self._db_save_remaining, task_id, countdown.remaining_secs)
                    except Exception as e:
                        logger.exception(f"Failed to persist remaining time for task {task_id}: {e}")

                await self._notify(
                    countdown.recipients,
                    TaskEvent(TaskEventType.TASK_TICK, task_id, remaining_secs=countdown.remaining_secs)
                )

                if countdown.remaining_secs > 0:
                    return

            try:
                await asyncio.to_thread(self._db_finish, task_id)
            except Exception as e:
                logger.exception(f"Failed to mark task {task_id} completed, retrying on next tick: {e}")
                return

            self._remove_job(task_id)
            del self._live[task_id]
            logger.info(f"Task {task_id} finished")
            await self._notify(countdown.recipients, TaskEvent(TaskEventType.TASK_FINISHED, task_id))

    async def pause(self, task_id: int) -> Optional[Dict[str, Any]]:
        """
        Pause a task, keeping its remaining time.

        A live countdown is stopped and its current value stored. A task that
        is stored as running without a live countdown (for example after a
        restart) is paused at its stored value. Anything else is left alone.

        Returns:
            The task payload, or None if there was nothing to pause
        """
        async with self._locks.hold(task_id):
            countdown = self._live.pop(task_id, None)
            if countdown is not None:
                self._remove_job(task_id)

            try:
                write = await asyncio.to_thread(
                    self._db_pause, task_id, countdown.remaining_secs if countdown else None
                )
            except Exception:
                if countdown is not None:
                    # Storage refused the pause, keep counting
                    self._live[task_id] = countdown
                    self._add_job(countdown)
                raise

            if write is None:
                return None

            logger.info(f"Paused task {task_id} at {write.remaining_secs}s")
            await self._notify(
                write.recipients,
                TaskEvent(TaskEventType.TASK_PAUSED, task_id, remaining_secs=write.remaining_secs)
            )
            return write.payload

    async def resume(self, task_id: int) -> Optional[Dict[str, Any]]:
        """
        Resume a paused task from its stored remaining time.

        Returns:
            The task payload, or None if the task was not paused
        """
        async with self._locks.hold(task_id):
            if task_id in self._live:
                return None
            current = await asyncio.to_thread(self._db_read, task_id)
            if current.payload["status"] != "paused":
                return None
            return await self._start_locked(task_id)

    async def stop(self, task_id: int) -> Optional[Dict[str, Any]]:
        """
        Cancel a task and drop any live countdown.

        Stopping a completed or cancelled task is a no-op.

        Returns:
            The task payload, or None if the task had already finished
        """
        async with self._locks.hold(task_id):
            write = await asyncio.to_thread(self._db_stop, task_id)
            self._drop_live(task_id)
            if write is None:
                return None

            logger.info(f"Stopped task {task_id}")
            await self._notify(write.recipients, TaskEvent(TaskEventType.TASK_STOPPED, task_id))
            return write.payload

    async def complete(self, task_id: int) -> Optional[Dict[str, Any]]:
        """
        Mark a task completed by hand, dropping any live countdown.

        Returns:
            The task payload, or None if the task had already finished
        """
        async with self._locks.hold(task_id):
            write = await asyncio.to_thread(self._db_complete, task_id)
            self._drop_live(task_id)
            if write is None:
                return None

            logger.info(f"Completed task {task_id} manually")
            await self._notify(
                write.recipients,
                TaskEvent(TaskEventType.BED_TASK_UPDATED, task_id, task=write.payload)
            )
            return write.payload

    async def recover(self) -> List[int]:
        """
        Reconcile tasks stored as running with this process, which has no live countdowns yet.

        With the "pause" policy they are paused at their last stored remaining
        time; with "resume" their countdown restarts from it.

        Returns:
            Ids of the reconciled tasks
        """
        task_ids = await asyncio.to_thread(self._db_running_task_ids)
        recovered: List[int] = []
        for task_id in task_ids:
            if task_id in self._live:
                continue
            try:
                if self._recovery_policy == RECOVERY_RESUME:
                    await self.start(task_id)
                else:
                    await self.pause(task_id)
                recovered.append(task_id)
            except Exception as e:
                logger.exception(f"Failed to recover task {task_id}: {e}")

        if recovered:
            logger.info(f"Recovered {len(recovered)} running task(s) with policy '{self._recovery_policy}'")
        return recovered

    async def shutdown(self) -> None:
        """
        Drop every live countdown and stop the scheduler.

        Nothing beyond the periodic tick writes is persisted; each task waits
        for its in-flight operation, up to a bounded time, before its job is removed.
        """
        for task_id in list(self._live):
            try:
                await asyncio.wait_for(self._drop(task_id), timeout=SHUTDOWN_DRAIN_SECONDS)
            except asyncio.TimeoutError:
                logger.warning(f"Timed out waiting for task {task_id} during shutdown")
                self._remove_job(task_id)
                self._live.pop(task_id, None)

        if self._is_started:
            self.scheduler.shutdown(wait=False)
            self._is_started = False
        logger.info("Task timer service stopped")

    async def _drop(self, task_id: int) -> None:
        async with self._locks.hold(task_id):
            self._drop_live(task_id)


# Global timer service instance
_task_timer_service: Optional[TaskTimerService] = None


def get_task_timer_service() -> TaskTimerService:
    """
    Get the global task timer service, publishing through the WebSocket notifier.
    """
    global _task_timer_service
    if _task_timer_service is None:
        _task_timer_service = TaskTimerService(notifier=get_connection_manager())
    return _task_timer_service


async def start_task_timer_service() -> None:
    """
    Start the global timer service and reconcile tasks left running.

    This should be called during application startup.
    """
    service = get_task_timer_service()
    service.start_scheduler()
    await service.recover()


async def stop_task_timer_service() -> None:
    """
    Stop the global timer service.

    This should be called during application shutdown.
    """
    global _task_timer_service
    if _task_timer_service:
        await _task_timer_service.shutdown()
        _task_timer_service = None
