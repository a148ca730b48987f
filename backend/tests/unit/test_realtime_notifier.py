"""
Unit tests for realtime event delivery.
"""

import pytest
from unittest.mock import AsyncMock

from services.realtime_notifier import ConnectionManagerNotifier
from shared_types.task_events import TaskEvent, TaskEventType


def _socket():
    websocket = AsyncMock()
    websocket.send_json = AsyncMock()
    return websocket


class TestTaskEventMessage:

    def test_tick_message(self):
        event = TaskEvent(TaskEventType.TASK_TICK, 5, remaining_secs=42)

        assert event.to_message() == {"event": "taskTick", "data": {"taskId": 5, "remainingSecs": 42}}

    def test_update_message_carries_task(self):
        event = TaskEvent(TaskEventType.BED_TASK_UPDATED, 5, task={"id": 5, "status": "completed"})

        assert event.to_message() == {
            "event": "bedTaskUpdated",
            "data": {"taskId": 5, "task": {"id": 5, "status": "completed"}},
        }

    def test_finished_message_has_only_task_id(self):
        assert TaskEvent(TaskEventType.TASK_FINISHED, 9).to_message() == {
            "event": "taskFinished",
            "data": {"taskId": 9},
        }


class TestConnectionManagerNotifier:

    @pytest.mark.asyncio
    async def test_events_reach_every_connection_of_recipients(self):
        manager = ConnectionManagerNotifier()
        first_tab, second_tab, outsider = _socket(), _socket(), _socket()
        await manager.connect(1, first_tab)
        await manager.connect(1, second_tab)
        await manager.connect(2, outsider)

        first_tab.accept.assert_awaited_once()
        assert manager.connection_count(1) == 2
        assert manager.connection_count() == 3

        event = TaskEvent(TaskEventType.TASK_STARTED, 7, remaining_secs=60)
        await manager.notify({1, 3}, event)

        first_tab.send_json.assert_awaited_once_with(event.to_message())
        second_tab.send_json.assert_awaited_once_with(event.to_message())
        outsider.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_send_drops_only_that_connection(self):
        manager = ConnectionManagerNotifier()
        broken, healthy = _socket(), _socket()
        broken.send_json.side_effect = RuntimeError("connection reset")
        await manager.connect(1, broken)
        await manager.connect(1, healthy)

        await manager.notify({1}, TaskEvent(TaskEventType.TASK_TICK, 7, remaining_secs=10))

        healthy.send_json.assert_awaited_once()
        assert manager.connection_count(1) == 1

    @pytest.mark.asyncio
    async def test_disconnect(self):
        manager = ConnectionManagerNotifier()
        websocket = _socket()
        await manager.connect(4, websocket)

        await manager.disconnect(4, websocket)
        await manager.disconnect(4, websocket)

        assert manager.connection_count() == 0
