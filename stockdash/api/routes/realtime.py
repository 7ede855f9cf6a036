"""
WebSocket endpoint for live quote snapshots.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws/quotes")
async def quotes_websocket(websocket: WebSocket):
    """
    Pushes {"type": "stock_update", "data": [...]} after each refresh tick.
    Incoming messages are ignored.
    """
    broadcaster = websocket.app.state.broadcaster
    await broadcaster.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Quote listener disconnected")
    finally:
        broadcaster.disconnect(websocket)
