"""Listener registry with failure-isolated broadcast."""

from __future__ import annotations

import logging
from typing import Any, Callable

LOGGER = logging.getLogger("panotiles.events")

Callback = Callable[[Any], None]


class Listeners:
    """Maps event names to ordered sets of callbacks."""

    def __init__(self, events: tuple[str, ...] = ('progress', 'error')):
        self.events = events
        self._callbacks: dict[str, dict[Callback, None]] = {}

    def _check(self, event: str) -> None:
        if event not in self.events:
            raise ValueError(f"Unknown event: {event!r} (expected one of {', '.join(self.events)})")

    def add(self, event: str, callback: Callback) -> None:
        self._check(event)
        self._callbacks.setdefault(event, {})[callback] = None

    def remove(self, event: str, callback: Callback) -> None:
        self._callbacks.get(event, {}).pop(callback, None)

    def count(self, event: str) -> int:
        return len(self._callbacks.get(event, {}))

    def emit(self, event: str, data: Any) -> None:
        """Call every listener for *event*; a failing listener never stops the others."""
        for callback in list(self._callbacks.get(event, {})):
            call_isolated(callback, data)

    def clear(self) -> None:
        self._callbacks.clear()


def call_isolated(callback: Callback, data: Any) -> None:
    try:
        callback(data)
    except Exception:
        LOGGER.debug("Listener %r raised; ignoring", callback, exc_info=True)
