"""
Клиент канала синхронизации для движка: отправка снимков в relay
и применение чужих снимков. Без соединения игра идёт локально (unsynced).
"""
import asyncio
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .config import get_config
from .constants import GET_GAME_STATE
from .engine import GameEngine
from .messages import decode, encode, envelope

logger = logging.getLogger(__name__)


class SyncClient:
    def __init__(self, engine: GameEngine, url: str | None = None):
        self.engine = engine
        self.url = url or get_config().relay_url
        self._ws = None
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self._warned_unsynced = False
        engine.channel = self

    @property
    def synced(self) -> bool:
        return self._ws is not None

    async def connect(self) -> bool:
        """Открыть канал и запросить текущий снимок. False — играем без синхронизации."""
        if self._tasks or self._ws is not None:
            await self.close()
        try:
            self._ws = await websockets.connect(self.url)
        except (OSError, WebSocketException) as e:
            logger.warning("SYNC: relay %s unavailable, playing unsynced: %s", self.url, e)
            self._ws = None
            return False
        logger.info("SYNC: connected to %s", self.url)
        self._warned_unsynced = False
        self._tasks = [
            asyncio.create_task(self._reader()),
            asyncio.create_task(self._writer()),
        ]
        self.send(envelope(GET_GAME_STATE))
        return True

    def send(self, message: dict[str, Any]) -> None:
        if self._ws is None:
            if not self._warned_unsynced:
                logger.warning("SYNC: not connected, changes are not shared")
                self._warned_unsynced = True
            return
        self._outbox.put_nowait(message)

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if ws is not None:
            await ws.close()
        logger.info("SYNC: closed")

    async def _writer(self) -> None:
        while True:
            message = await self._outbox.get()
            ws = self._ws
            if ws is None:
                continue
            try:
                await ws.send(encode(message))
            except ConnectionClosed as e:
                logger.warning("SYNC: send failed, going unsynced: %s", e)
                self._ws = None
                return

    async def _reader(self) -> None:
        ws = self._ws
        try:
            async for raw in ws:
                data = decode(raw)
                if data is None:
                    logger.warning("SYNC: dropped malformed message from relay")
                    continue
                self.engine.apply_remote(data)
        except ConnectionClosed as e:
            logger.warning("SYNC: relay closed the channel: %s", e)
        finally:
            if self._ws is ws:
                self._ws = None
                logger.warning("SYNC: playing unsynced")
