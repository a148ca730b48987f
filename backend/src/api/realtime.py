# pyright: reportMissingTypeStubs=false
"""
Realtime WebSocket endpoint.

Clients connect with their bearer token as a query parameter and receive
bed task events ({"event": ..., "data": {...}}) addressed to them.
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from auth.dependencies import decode_caller_token
from services.realtime_notifier import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query(...)):
    """
    Subscribe to the caller's bed task events.

    Incoming messages are ignored; the socket stays open until the client leaves.
    """
    caller = decode_caller_token(token)
    if caller is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = get_connection_manager()
    await manager.connect(caller.user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(caller.user_id, websocket)
