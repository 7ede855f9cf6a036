"""
Live quote push.

Every connected WebSocket gets the full quote table after each refresh tick.
No acknowledgement or backpressure: a client that cannot be written to is
dropped.
"""

import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class QuoteBroadcaster:
    """Manages WebSocket connections for quote snapshots"""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"User connected ({len(self.active_connections)} listeners)")

    def disconnect(self, websocket: WebSocket) -> None:
        self.active_connections.discard(websocket)
        logger.info(f"User disconnected ({len(self.active_connections)} listeners)")

    async def broadcast(self, data: Dict[str, Any]) -> int:
        """Send to every listener; returns how many received it"""
        delivered = 0
        disconnected = set()

        for websocket in list(self.active_connections):
            try:
                await websocket.send_json(data)
                delivered += 1
            except Exception as exc:  # any transport failure means the client is gone
                logger.warning(f"Failed to push snapshot to listener: {exc}")
                disconnected.add(websocket)

        for websocket in disconnected:
            self.disconnect(websocket)
        return delivered

    def count(self) -> int:
        return len(self.active_connections)
