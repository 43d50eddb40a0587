# inventory_tracker/services/websockets/manager.py
import asyncio
import logging
from typing import Dict

from fastapi import WebSocket, WebSocketDisconnect

from inventory_tracker.services.change_bus import ChangeBus, Subscription

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Relays change-bus events to connected WebSocket clients.

    Each connection gets its own bus subscription, so a slow or broken client
    only ever loses its own events.
    """

    def __init__(self, bus: ChangeBus):
        self.bus = bus
        self.active_connections: Dict[WebSocket, Subscription] = {}

    async def connect(self, websocket: WebSocket) -> Subscription:
        # Subscribe before accepting so nothing committed after the handshake is missed
        subscription = self.bus.subscribe()
        self.active_connections[websocket] = subscription
        try:
            await websocket.accept()
        except Exception:
            self.disconnect(websocket)
            raise
        logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")
        return subscription

    def disconnect(self, websocket: WebSocket):
        subscription = self.active_connections.pop(websocket, None)
        if subscription is not None:
            self.bus.unsubscribe(subscription)
        logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    async def _forward(self, websocket: WebSocket, subscription: Subscription):
        async for event in subscription:
            await websocket.send_json(event.to_message())

    async def _listen(self, websocket: WebSocket):
        # Inbound frames carry nothing; reading them is how a disconnect is noticed
        while True:
            await websocket.receive_text()

    async def relay(self, websocket: WebSocket):
        """Forward events to one client until either side goes away."""
        subscription = self.active_connections[websocket]
        forward = asyncio.create_task(self._forward(websocket, subscription))
        listen = asyncio.create_task(self._listen(websocket))
        try:
            done, _ = await asyncio.wait({forward, listen}, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.error(f"Error relaying to WebSocket: {exc}")
        finally:
            for task in (forward, listen):
                task.cancel()
            await asyncio.gather(forward, listen, return_exceptions=True)
            self.disconnect(websocket)

    def close_all(self):
        for websocket in list(self.active_connections):
            self.disconnect(websocket)
