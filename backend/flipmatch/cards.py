"""
Карты и колода: построение пар и равномерное перемешивание.
"""
import random
from dataclasses import dataclass
from typing import Any

from .constants import GRID_SIZE, SYMBOLS, CardPayload


@dataclass
class Card:
    id: int
    symbol: str
    is_flipped: bool = False
    is_matched: bool = False  # навсегда после совпадения

    def to_payload(self) -> CardPayload:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "isFlipped": self.is_flipped,
            "isMatched": self.is_matched,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "Card":
        """Разбор карты из сообщения. KeyError/TypeError/ValueError при кривых данных."""
        return cls(
            id=int(data["id"]),
            symbol=str(data["symbol"]),
            is_flipped=bool(data.get("isFlipped", False)),
            is_matched=bool(data.get("isMatched", False)),
        )


def build_deck(symbols: list[str] = SYMBOLS, grid_size: int = GRID_SIZE) -> list[Card]:
    """
    Каждый символ дважды (id 2i и 2i+1), обрезка до вместимости сетки.
    Колода не перемешана.
    """
    cards = [
        Card(id=index * 2 + copy, symbol=symbol)
        for index, symbol in enumerate(symbols)
        for copy in (0, 1)
    ]
    capacity = grid_size * grid_size
    capacity -= capacity % 2  # пары не разрываем
    return cards[:capacity]


def shuffle_deck(cards: list[Card], rng: random.Random | None = None) -> list[Card]:
    """Fisher–Yates, in-place. Возвращает тот же список."""
    rng = rng or random.Random()
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randrange(i + 1)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


def deal(symbols: list[str] = SYMBOLS, grid_size: int = GRID_SIZE, rng: random.Random | None = None) -> list[Card]:
    return shuffle_deck(build_deck(symbols, grid_size), rng)
