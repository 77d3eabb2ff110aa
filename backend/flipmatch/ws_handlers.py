"""
Обработка сообщений WebSocket relay: UPDATE_GAME_STATE, GET_GAME_STATE
и пересылка INITIALIZE_GAME / UPDATE_GAME_STATE / GAME_OVER остальным клиентам.
"""
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .constants import FORWARDED_TYPES, GAME_STATE, GET_GAME_STATE, UPDATE_GAME_STATE
from .messages import decode, envelope
from .relay import RelaySession
from .ws_manager import WSManager

logger = logging.getLogger(__name__)


async def handle_ws_message(raw: str | bytes, client_id: str, relay: RelaySession, manager: WSManager) -> None:
    """
    Обрабатывает одно сообщение целиком, до следующего.
    Кривые и неизвестные сообщения молча отбрасываются.
    """
    data = decode(raw)
    if data is None:
        logger.warning("WS: dropped malformed message from %s", client_id)
        return
    t = data["type"]
    logger.debug("WS: msg from %s type=%s", client_id, t)
    if t == UPDATE_GAME_STATE:
        relay.store(data.get("payload"))
    elif t == GET_GAME_STATE:
        await manager.send_to_client(client_id, envelope(GAME_STATE, relay.latest))
        return
    elif t not in FORWARDED_TYPES:
        logger.debug("WS: ignored type=%s from %s", t, client_id)
        return
    await manager.broadcast_except(client_id, data)


async def ws_loop(ws: WebSocket) -> None:
    """Приём сообщений до отключения. Снимок при отключении не трогаем."""
    relay: RelaySession = ws.app.state.relay
    manager: WSManager = ws.app.state.manager
    client_id = None
    try:
        await ws.accept()
        client_id = manager.connect(ws)
        logger.info("WS: client connected id=%s total=%d", client_id, manager.count)
        while True:
            msg = await ws.receive()
            if msg["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(msg.get("code", 1000), msg.get("reason"))
            # текстовые и бинарные кадры разбираем одинаково
            raw = msg.get("text")
            if raw is None:
                raw = msg.get("bytes") or b""
            await handle_ws_message(raw, client_id, relay, manager)
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s reason=%s id=%s", e.code, e.reason or "", client_id)
    except Exception as e:
        logger.exception("WS: error id=%s: %s", client_id, e)
    finally:
        if client_id:
            manager.disconnect(client_id)
            logger.info("WS: disconnected id=%s total=%d", client_id, manager.count)
