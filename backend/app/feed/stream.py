"""WebSocket endpoint that attaches subscribers to the broadcast hub."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from .hub import BroadcastHub

logger = logging.getLogger(__name__)


class WebSocketSink:
    """Adapts a Starlette WebSocket to the hub's Sink protocol."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, message: str) -> None:
        await self._websocket.send_text(message)

    async def close(self) -> None:
        if self._websocket.application_state != WebSocketState.DISCONNECTED:
            await self._websocket.close()


def create_stream_router(hub: BroadcastHub) -> APIRouter:
    """Create the feed router with a reference to the hub.

    This factory pattern lets us inject the hub without globals.
    """
    router = APIRouter(tags=["streaming"])

    @router.websocket("/ws")
    async def feed_socket(websocket: WebSocket) -> None:
        """Subscribe to the live feed.

        The first frame is always a ConnectionConfirmed envelope; every frame
        after it is a published envelope:

            {"type": "PriceUpdate", "timestamp": 1707580800000, "data": {...}}

        Subscribers are not expected to send anything. Inbound frames, text or
        binary, are read and discarded so that disconnects are noticed.
        """
        await websocket.accept()
        client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        logger.info("Feed client connected: %s", client)

        handle = await hub.accept(WebSocketSink(websocket))
        try:
            while handle in hub:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info("Feed client disconnected: %s", client)
                    break
        finally:
            hub.remove(handle)

    @router.get("/api/feed/health")
    async def feed_health() -> dict:
        """Liveness plus the number of attached subscribers."""
        return {"status": "ok", "sinks": hub.sink_count}

    return router
