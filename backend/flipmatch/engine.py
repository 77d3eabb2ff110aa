"""
Игровой движок (клиентская сторона): колода, переворот карт, проверка пар,
очки и обратный отсчёт. Единственный источник истины: меняет локальное
состояние и отправляет полный снимок в канал синхронизации.
"""
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from .cards import Card, deal
from .constants import (
    DEFAULT_TIME,
    GAME_OVER,
    GAME_STATE,
    GRID_SIZE,
    INITIALIZE_GAME,
    RESOLVE_DELAY_SECONDS,
    SYMBOLS,
    TICK_SECONDS,
    UPDATE_GAME_STATE,
)
from .messages import envelope
from .scheduler import AsyncioScheduler, Handle, Scheduler

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    DEALING = "dealing"
    PLAYING = "playing"
    RESOLVING = "resolving"
    GAME_OVER = "game_over"


class Channel(Protocol):
    def send(self, message: dict[str, Any]) -> None: ...


@dataclass
class GameSession:
    cards: list[Card] = field(default_factory=list)
    flipped: list[int] = field(default_factory=list)  # не больше двух id
    seconds_remaining: int = DEFAULT_TIME
    score: int = 0
    ended: bool = False
    configured_duration: int = DEFAULT_TIME

    def card(self, card_id: int) -> Card | None:
        for c in self.cards:
            if c.id == card_id:
                return c
        return None

    def snapshot(self) -> dict[str, Any]:
        """Payload для UPDATE_GAME_STATE."""
        return {
            "cards": [c.to_payload() for c in self.cards],
            "flippedCards": list(self.flipped),
            "timer": self.seconds_remaining,
            "score": self.score,
            "gameEnded": self.ended,
            "timeCustom": self.configured_duration,
        }

    def initialize_payload(self) -> dict[str, Any]:
        return {
            "cards": [c.to_payload() for c in self.cards],
            "timer": self.seconds_remaining,
            "timeCustom": self.configured_duration,
        }


class GameEngine:
    def __init__(
        self,
        channel: Channel | None = None,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        symbols: list[str] = SYMBOLS,
        grid_size: int = GRID_SIZE,
        resolve_delay: float = RESOLVE_DELAY_SECONDS,
        tick_seconds: float = TICK_SECONDS,
        auto_tick: bool = True,
    ):
        self.channel = channel
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()
        self.symbols = symbols
        self.grid_size = grid_size
        self.resolve_delay = resolve_delay
        self.tick_seconds = tick_seconds
        self.auto_tick = auto_tick
        self.session = GameSession()
        self.phase = Phase.IDLE
        self._resolve_handle: Handle | None = None
        self._clock_handle: Handle | None = None
        # Меняется при каждой раздаче; отложенные вызовы старой партии игнорируются
        self._generation = 0

    @property
    def locked(self) -> bool:
        """Идёт разрешение пары: новые перевороты отклоняются."""
        return self._resolve_handle is not None

    @property
    def synced(self) -> bool:
        if self.channel is None:
            return False
        return bool(getattr(self.channel, "synced", True))

    # --- Операции игрока и часов ---

    def start_game(self, duration: int | None = None) -> bool:
        if duration is None:
            duration = self.session.configured_duration
        if not isinstance(duration, int) or duration <= 0:
            logger.warning("ENGINE: refusing to start with duration=%r", duration)
            return False
        generation = self._generation + 1
        clock = None
        if self.auto_tick:
            # часы заводим до любых изменений: без планировщика партию не начинаем
            clock = self._schedule(self.tick_seconds, lambda: self._on_clock(generation))
            if clock is None:
                return False
        self._cancel_pending()
        self._generation = generation
        self.phase = Phase.DEALING
        cards = deal(self.symbols, self.grid_size, self.rng)
        self.session = GameSession(
            cards=cards,
            seconds_remaining=duration,
            configured_duration=duration,
        )
        self.phase = Phase.PLAYING
        self._clock_handle = clock
        logger.info("ENGINE: dealt %d cards, duration=%ss", len(cards), duration)
        self._send(envelope(INITIALIZE_GAME, self.session.initialize_payload()))
        self._publish()
        return True

    def reset(self, duration: int | None = None) -> bool:
        """Новая раздача из любого состояния, текущая доска бросается."""
        logger.info("ENGINE: reset from phase=%s", self.phase.value)
        return self.start_game(duration)

    def flip_card(self, card_id: int) -> bool:
        """
        Открыть карту. False (и никаких изменений), если игра окончена,
        карта уже выбрана/угадана/не из колоды или идёт разрешение пары.
        """
        s = self.session
        if s.ended or self.phase != Phase.PLAYING or self.locked:
            return False
        if card_id in s.flipped:
            return False
        card = s.card(card_id)
        if card is None or card.is_matched:
            return False
        if s.flipped and not self._begin_resolution((s.flipped[0], card_id)):
            return False
        card.is_flipped = True
        s.flipped.append(card_id)
        self._publish()
        return True

    def tick(self) -> bool:
        s = self.session
        if s.ended or self.phase not in (Phase.PLAYING, Phase.RESOLVING):
            return False
        s.seconds_remaining = max(0, s.seconds_remaining - 1)
        if s.seconds_remaining == 0:
            s.ended = True
            self.phase = Phase.GAME_OVER
            self._stop_clock()
            logger.info("ENGINE: time is up, score=%d", s.score)
            self._publish()
            self._send(envelope(GAME_OVER))
            return True
        self._publish()
        return True

    # --- Разрешение пары ---

    def _begin_resolution(self, pair: tuple[int, int]) -> bool:
        generation = self._generation
        handle = self._schedule(self.resolve_delay, lambda: self._resolve(pair, generation))
        if handle is None:
            return False
        self._resolve_handle = handle
        self.phase = Phase.RESOLVING
        return True

    def _resolve(self, pair: tuple[int, int], generation: int) -> None:
        if generation != self._generation:
            return
        self._resolve_handle = None
        s = self.session
        first, second = s.card(pair[0]), s.card(pair[1])
        if first is not None and second is not None and first.symbol == second.symbol:
            s.score += 1
            for c in s.cards:
                if c.symbol == first.symbol:
                    c.is_matched = True
            logger.debug("ENGINE: match %s, score=%d", first.symbol, s.score)
        else:
            for c in (first, second):
                if c is not None:
                    c.is_flipped = False
        s.flipped = []
        # Истечение времени побеждает: GAME_OVER остаётся
        if not s.ended:
            self.phase = Phase.PLAYING
        self._publish()

    # --- Часы ---

    def _arm_clock(self) -> None:
        self._stop_clock()
        if not self.auto_tick or self.session.ended:
            return
        generation = self._generation
        self._clock_handle = self._schedule(self.tick_seconds, lambda: self._on_clock(generation))

    def _schedule(self, delay: float, callback: Callable[[], None]) -> Handle | None:
        """None, если планировщик недоступен (например, нет запущенного event loop)."""
        try:
            return self.scheduler.call_later(delay, callback)
        except RuntimeError as e:
            logger.warning("ENGINE: cannot schedule callback: %s", e)
            return None

    def _on_clock(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._clock_handle = None
        if self.tick() and not self.session.ended:
            self._arm_clock()

    def _stop_clock(self) -> None:
        if self._clock_handle is not None:
            self._clock_handle.cancel()
            self._clock_handle = None

    def _cancel_pending(self) -> None:
        self._stop_clock()
        if self._resolve_handle is not None:
            self._resolve_handle.cancel()
            self._resolve_handle = None

    # --- Синхронизация ---

    def _publish(self) -> None:
        self._send(envelope(UPDATE_GAME_STATE, self.session.snapshot()))

    def _send(self, message: dict[str, Any]) -> None:
        if self.channel is None:
            logger.debug("ENGINE: unsynced, %s kept local", message["type"])
            return
        try:
            self.channel.send(message)
        except Exception as e:
            logger.warning("ENGINE: channel send failed, playing unsynced: %s", e)

    def apply_remote(self, message: dict[str, Any]) -> bool:
        """
        Принять состояние от relay. Ничего не отправляет обратно.
        Возвращает False, если сообщение проигнорировано.
        """
        t = message.get("type")
        payload = message.get("payload")
        if not isinstance(payload, dict):
            payload = {}
        handler: Callable[[dict[str, Any]], bool] | None = {
            INITIALIZE_GAME: self._apply_initialize,
            UPDATE_GAME_STATE: self._apply_state,
            GAME_STATE: self._apply_state,
            GAME_OVER: self._apply_game_over,
        }.get(t)
        if handler is None:
            return False
        try:
            return handler(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("ENGINE: dropped malformed %s: %s", t, e)
            return False

    def _apply_initialize(self, payload: dict[str, Any]) -> bool:
        cards = [Card.from_payload(c) for c in payload["cards"]]
        timer = int(payload["timer"])
        time_custom = int(payload.get("timeCustom", timer))
        self._cancel_pending()
        self._generation += 1
        self.session = GameSession(
            cards=cards,
            seconds_remaining=timer,
            configured_duration=time_custom if time_custom > 0 else self.session.configured_duration,
        )
        self.phase = Phase.PLAYING
        self._arm_clock()
        return True

    def _apply_state(self, payload: dict[str, Any]) -> bool:
        cards = [Card.from_payload(c) for c in payload.get("cards") or []]
        if not cards:
            return False
        by_id = {c.id: c for c in cards}
        flipped: list[int] = []
        for raw_id in payload.get("flippedCards") or []:
            card_id = int(raw_id)
            card = by_id.get(card_id)
            # только разные, существующие и не угаданные карты
            if card is None or card.is_matched or card_id in flipped:
                continue
            flipped.append(card_id)
        flipped = flipped[:2]
        time_custom = int(payload.get("timeCustom", self.session.configured_duration))
        session = GameSession(
            cards=cards,
            flipped=flipped,
            seconds_remaining=max(0, int(payload["timer"])),
            score=max(0, int(payload.get("score", 0))),
            ended=bool(payload.get("gameEnded", False)),
            configured_duration=time_custom if time_custom > 0 else self.session.configured_duration,
        )
        self._cancel_pending()
        self._generation += 1
        self.session = session
        if session.ended:
            self.phase = Phase.GAME_OVER
            return True
        self.phase = Phase.PLAYING
        if len(flipped) == 2 and not self._begin_resolution((flipped[0], flipped[1])):
            # разрешить пару нечем: закрываем её, чтобы не застрять с двумя картами
            for card_id in flipped:
                by_id[card_id].is_flipped = False
            session.flipped = []
        self._arm_clock()
        return True

    def _apply_game_over(self, payload: dict[str, Any]) -> bool:
        if self.session.ended:
            return False
        self.session.ended = True
        self.phase = Phase.GAME_OVER
        self._stop_clock()
        return True
