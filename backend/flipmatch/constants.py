"""Константы игры и типы сообщений протокола."""
from typing import TypedDict


class CardPayload(TypedDict):
    id: int
    symbol: str
    isFlipped: bool
    isMatched: bool


SYMBOLS: list[str] = ["🍎", "🍌", "🍇", "🍒", "🍉", "🍍", "🍋", "🍑"]
GRID_SIZE = 8
DEFAULT_TIME = 60
RESOLVE_DELAY_SECONDS = 1.0
TICK_SECONDS = 1.0

# Типы сообщений
INITIALIZE_GAME = "INITIALIZE_GAME"
UPDATE_GAME_STATE = "UPDATE_GAME_STATE"
GAME_OVER = "GAME_OVER"
GET_GAME_STATE = "GET_GAME_STATE"
GAME_STATE = "GAME_STATE"

# Сообщения, которые relay пересылает остальным клиентам
FORWARDED_TYPES = (INITIALIZE_GAME, UPDATE_GAME_STATE, GAME_OVER)
