# inventory_tracker/routes/websockets.py
from fastapi import APIRouter, WebSocket
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    manager = websocket.app.state.connection_manager
    await manager.connect(websocket)
    await manager.relay(websocket)
    logger.info("WebSocket client disconnected")
