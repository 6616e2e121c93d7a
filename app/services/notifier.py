"""
Realtime fan-out of order events to connected admin dashboards.

The registry is process-local and in-memory: no persistence, no queuing,
no cross-process delivery. Dashboards re-fetch on an interval anyway, so a
dropped event only delays a refresh.
"""
import json
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)

PAYMENT_SUBMITTED = "PAYMENT_SUBMITTED"
PAYMENT_APPROVED = "PAYMENT_APPROVED"
PAYMENT_REJECTED = "PAYMENT_REJECTED"


class ConnectionRegistry:
    """Set of open admin sessions. Safe within a single event loop."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._connections)

    def add(self, websocket: WebSocket) -> None:
        self._connections.add(websocket)
        logger.info("Dashboard connected (%d open)", len(self._connections))

    def remove(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        logger.info("Dashboard disconnected (%d open)", len(self._connections))

    @staticmethod
    def _is_open(websocket: WebSocket) -> bool:
        return (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        )

    async def broadcast(self, event_type: str, data: Dict[str, Any]) -> int:
        """Send {type, data} to every open session. Returns how many were reached."""
        message = json.dumps({"type": event_type, "data": data})
        sent = 0
        for websocket in list(self._connections):
            if not self._is_open(websocket):
                continue
            try:
                await websocket.send_text(message)
                sent += 1
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.warning("Dropping dashboard connection after send failure: %s", e)
                self._connections.discard(websocket)
        return sent


registry = ConnectionRegistry()


def get_notifier() -> ConnectionRegistry:
    return registry
