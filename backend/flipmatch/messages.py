"""
Конверты сообщений: {"type": str, "payload"?: object}, JSON-текст.
"""
import json
from typing import Any

from .constants import DEFAULT_TIME


def envelope(msg_type: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    msg: dict[str, Any] = {"type": msg_type}
    if payload is not None:
        msg["payload"] = payload
    return msg


def encode(message: dict[str, Any]) -> str:
    return json.dumps(message, ensure_ascii=False)


def decode(raw: str | bytes) -> dict[str, Any] | None:
    """None, если это не JSON-объект со строковым type."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        return None
    return data


def empty_game_state(time_custom: int = DEFAULT_TIME) -> dict[str, Any]:
    """Состояние relay до первого UPDATE_GAME_STATE."""
    return {
        "cards": [],
        "flippedCards": [],
        "timer": time_custom,
        "score": 0,
        "gameEnded": False,
        "timeCustom": time_custom,
    }
