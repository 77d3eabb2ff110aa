"""
Сессия relay: один слот с последним снимком, last-write-wins.
Правил игры не знает, payload не проверяет.
"""
import logging
from typing import Any

from .constants import DEFAULT_TIME
from .messages import empty_game_state

logger = logging.getLogger(__name__)


class RelaySession:
    def __init__(self, time_custom: int = DEFAULT_TIME):
        self._latest: Any = empty_game_state(time_custom)
        self.version = 0  # растёт с каждой записью, только для логов

    @property
    def latest(self) -> Any:
        return self._latest

    def store(self, snapshot: Any) -> int:
        """Перезаписать снимок целиком. Без слияния и без проверки версий."""
        self._latest = snapshot
        self.version += 1
        logger.info("RELAY: snapshot stored, version=%d", self.version)
        return self.version
