"""
WebSocket connections keyed by user id, used to push chatbot replies and
screening results to the browser.
"""
from datetime import datetime
from typing import Any, Dict, List

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    def __init__(self):
        self.connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.setdefault(user_id, []).append(websocket)
        logger.info(f"WebSocket connected for user {user_id} ({len(self.connections[user_id])} open)")

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        sockets = self.connections.get(user_id, [])
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            self.connections.pop(user_id, None)
        logger.info(f"WebSocket disconnected for user {user_id}")

    def is_connected(self, user_id: str) -> bool:
        return bool(self.connections.get(user_id))

    async def send_to_user(self, user_id: str, event: str, payload: Any) -> int:
        """Send an event to every socket the user has open; returns how many received it"""
        message = jsonable_encoder({"event": event, "data": payload, "timestamp": datetime.utcnow()})
        delivered = 0
        for websocket in list(self.connections.get(user_id, [])):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping WebSocket for user {user_id} after send failure: {e}")
                self.disconnect(user_id, websocket)
        return delivered


manager = ConnectionManager()
