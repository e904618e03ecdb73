"""WebSocket endpoint that streams reminder notifications to the browser."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from scheduler.subscribers import SubscriberRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.websocket("/ws-notifications")
async def notifications_socket(websocket: WebSocket) -> None:
    """Keep the connection registered until the client goes away.

    Inbound frames are read only to detect the disconnect; their content is
    ignored.
    """

    subscribers: SubscriberRegistry = websocket.app.state.subscribers
    await websocket.accept()
    subscribers.register(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Notification socket closed by client")
    finally:
        subscribers.unregister(websocket)
