"""Live change feed over WebSocket."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fileshare.notifier import Subscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Events"])


async def _watch_disconnect(websocket: WebSocket, subscription: Subscription) -> None:
    # Viewers never send anything we act on; reading only detects the close.
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        subscription.close()


@router.websocket("/ws/changes")
async def change_feed(websocket: WebSocket):
    """
    Push one files-updated message per committed upload or delete.

    The first message is a 'connected' greeting sent once the viewer is
    subscribed.
    """
    notifier = websocket.app.state.context.notifier
    subscription = notifier.subscribe()
    await websocket.accept()
    watcher = asyncio.create_task(_watch_disconnect(websocket, subscription))
    logger.info(f"Viewer connected ({notifier.subscriber_count} active)")

    try:
        await websocket.send_json({"event": "connected", "viewers": notifier.subscriber_count})
        async for event in subscription:
            await websocket.send_json(event.to_message())
    except (WebSocketDisconnect, RuntimeError, OSError) as e:
        logger.debug(f"Viewer send failed: {e!r}")
    finally:
        subscription.close()
        watcher.cancel()
        logger.info(f"Viewer disconnected ({notifier.subscriber_count} active)")
