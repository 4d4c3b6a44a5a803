"""Topic-keyed publish/subscribe registry for monitor output."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

_logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class Topic(StrEnum):
    WATCHING = "watching"
    NEARBY = "nearby"
    GROUPS = "groups"
    CHAT = "chat"


class EventBus:
    """Fan-out of published values to listeners, keyed by topic.

    Delivery iterates over a snapshot of the listeners registered when
    :meth:`publish` was called: a listener added during delivery first
    sees the next value, and a listener removed during delivery still
    receives the current one exactly once.
    """

    def __init__(self) -> None:
        self._listeners: dict[Topic, list[Listener]] = {}

    def subscribe(self, topic: Topic | str, listener: Listener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it."""
        key = Topic(topic)
        self._listeners.setdefault(key, []).append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(key, listener)

        return _unsubscribe

    def unsubscribe(self, topic: Topic | str, listener: Listener) -> None:
        key = Topic(topic)
        listeners = self._listeners.get(key)
        if not listeners:
            return
        # Removes the first registration only, mirroring one subscribe call.
        try:
            listeners.remove(listener)
        except ValueError:
            return
        if not listeners:
            self._listeners.pop(key, None)

    def listener_count(self, topic: Topic | str) -> int:
        return len(self._listeners.get(Topic(topic), ()))

    def publish(self, topic: Topic | str, payload: Any) -> None:
        key = Topic(topic)
        for listener in tuple(self._listeners.get(key, ())):
            try:
                listener(payload)
            except Exception:
                _logger.debug("%s listener failed", key, exc_info=True)
