from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.notifier import manager
from app.utils.logging_config import get_logger

router = APIRouter(tags=["realtime"])
logger = get_logger(__name__)


@router.websocket("/ws/{user_id}")
async def notifications(websocket: WebSocket, user_id: str):
    """Notification channel; incoming "ping" frames are answered with "pong" """
    await manager.connect(user_id, websocket)
    try:
        while True:
            text = await websocket.receive_text()
            if text.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        manager.disconnect(user_id, websocket)
