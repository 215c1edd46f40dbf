"""
notifications.py
----------------
Purpose:
    WebSocket push channel. A connection joins the broadcaster's subscriber
    set on accept and leaves it on disconnect. Messages are server-to-client
    only; anything the client sends is ignored.
"""

from fastapi import APIRouter, Depends, WebSocket, status

from liqa.infrastructure.notifications.broadcaster import (
    NotificationBroadcaster,
    WebSocketSubscriber,
)
from liqa.infrastructure.observability.logging import get_logger
from liqa.routes.dependencies import get_websocket_broadcaster

router = APIRouter()
logger = get_logger(__name__)


@router.websocket("/ws")
async def notifications_socket(
    websocket: WebSocket,
    broadcaster: NotificationBroadcaster | None = Depends(get_websocket_broadcaster),
):
    if broadcaster is None:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket)
    await broadcaster.subscribe(subscriber)

    try:
        # Text and binary frames alike are read and dropped
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug("WebSocket closed by client", code=message.get("code"))
                break
    finally:
        await broadcaster.unsubscribe(subscriber)
