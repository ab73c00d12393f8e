"""Transient user-visible notices produced from recovered failures."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class NoticeLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


NoticeListener = Callable[[Notice], None]


class NoticeBus:
    """Keeps the most recent notices and forwards each one to listeners."""

    def __init__(self, history: int = 20) -> None:
        self.recent: deque[Notice] = deque(maxlen=history)
        self._listeners: list[NoticeListener] = []

    def subscribe(self, listener: NoticeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, level: NoticeLevel, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        self.recent.append(notice)
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.error("Notice listener failed", exc_info=True)
        return notice

    def info(self, message: str) -> Notice:
        return self.publish(NoticeLevel.INFO, message)

    def warning(self, message: str) -> Notice:
        return self.publish(NoticeLevel.WARNING, message)

    def error(self, message: str) -> Notice:
        return self.publish(NoticeLevel.ERROR, message)
