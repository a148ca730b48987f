# pyright: reportMissingTypeStubs=false
"""
Realtime delivery of bed task events.

The timer engine and bed task service publish TaskEvents through a
RealtimeNotifier. Delivery is best-effort: a failed send is logged and
dropped, and the database row stays the source of truth for clients that
reconnect.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set

from fastapi import WebSocket

from shared_types.task_events import TaskEvent

logger = logging.getLogger(__name__)


class RealtimeNotifier(ABC):
    """Publishes task events to a set of user ids."""

    @abstractmethod
    async def notify(self, recipients: Set[int], event: TaskEvent) -> None:
        """
        Deliver an event to every connected recipient.

        Implementations must not raise; failures are logged.
        """


class ConnectionManagerNotifier(RealtimeNotifier):
    """
    Tracks open WebSocket connections per user and fans events out to them.

    A user may hold several connections (multiple tabs or devices). Sending
    to one connection that fails drops only that connection.
    """

    def __init__(self) -> None:
        self._connections: Dict[int, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        """Accept and register a connection for user_id."""
        await websocket.accept()
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(websocket)
        logger.info(f"Realtime connection opened for user {user_id}")

    async def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._connections[user_id]
        logger.info(f"Realtime connection closed for user {user_id}")

    def connection_count(self, user_id: Optional[int] = None) -> int:
        """Number of open connections, for one user or overall."""
        if user_id is not None:
            return len(self._connections.get(user_id, ()))
        return sum(len(sockets) for sockets in self._connections.values())

    async def _targets(self, recipients: Iterable[int]) -> list[tuple[int, WebSocket]]:
        async with self._lock:
            return [
                (user_id, websocket)
                for user_id in recipients
                for websocket in self._connections.get(user_id, ())
            ]

    async def notify(self, recipients: Set[int], event: TaskEvent) -> None:
        message = event.to_message()
        for user_id, websocket in await self._targets(recipients):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(
                    f"Failed to deliver {event.type.value} for task {event.task_id} "
                    f"to user {user_id}: {e}"
                )
                await self.disconnect(user_id, websocket)


# Global notifier instance
_connection_manager: Optional[ConnectionManagerNotifier] = None


def get_connection_manager() -> ConnectionManagerNotifier:
    """Get the global WebSocket notifier instance."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManagerNotifier()
    return _connection_manager
