"""
Менеджер WebSocket: подключения по client_id, ответ одному клиенту и рассылка остальным.
"""
import logging
import uuid
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, client_id: str):
        self.ws = ws
        self.client_id = client_id


class WSManager:
    def __init__(self):
        self._by_client: dict[str, Connection] = {}

    def connect(self, ws: WebSocket) -> str:
        client_id = uuid.uuid4().hex[:8]
        self._by_client[client_id] = Connection(ws, client_id)
        return client_id

    def disconnect(self, client_id: str) -> None:
        self._by_client.pop(client_id, None)

    @property
    def count(self) -> int:
        return len(self._by_client)

    async def send_to_client(self, client_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_client.get(client_id)
        if not conn:
            return False
        try:
            await conn.ws.send_json(payload)
            return True
        except Exception as e:
            logger.warning("send_to_client %s: %s", client_id, e)
            self.disconnect(client_id)
            return False

    async def broadcast_except(self, sender_id: str, payload: dict[str, Any]) -> None:
        dead = []
        for conn in list(self._by_client.values()):
            if conn.client_id == sender_id:
                continue
            try:
                await conn.ws.send_json(payload)
            except Exception as e:
                logger.warning("broadcast to %s failed: %s", conn.client_id, e)
                dead.append(conn)
        for conn in dead:
            self.disconnect(conn.client_id)
