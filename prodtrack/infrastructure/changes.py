"""Change notification channel between storage and the engine's caller.

Storage publishes the new snapshot version after every write; subscribers
(usually :meth:`EngineService.on_change`) decide what to recompute.  Delivery
is synchronous and in subscription order.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[int], None]


class ChangeChannel(Protocol):
    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]: ...

    def publish(self, snapshot_version: int) -> None: ...


class LocalChangeChannel:
    """In-process channel; a failing subscriber does not starve the others."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, snapshot_version: int) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot_version)
            except Exception:
                logger.exception("change subscriber failed for version %s", snapshot_version)
