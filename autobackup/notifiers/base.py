"""Notification sink interface and in-process implementations."""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Protocol

logger = logging.getLogger(__name__)

PERFORM_BACKUP = "perform-backup"

Listener = Callable[[], None]


class NotificationError(RuntimeError):
    """Raised when a notification could not be delivered."""


class NotificationSink(Protocol):
    """Receives named events emitted by the scheduler.

    Delivery is at-least-once; receivers must tolerate duplicates.
    """

    def notify(self, event: str) -> None:
        ...


class CallbackSink:
    """Adapt a plain callable ``callback(event)`` to :class:`NotificationSink`."""

    def __init__(self, callback: Callable[[str], None]) -> None:
        self._callback = callback

    def notify(self, event: str) -> None:
        try:
            self._callback(event)
        except Exception as exc:
            raise NotificationError(f"callback failed for {event!r}: {exc}") from exc


class EventBus:
    """Fan an event out to every subscribed listener.

    Listeners run synchronously on the notifying thread, in subscription
    order. A failing listener does not prevent the others from running.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""

        with self._lock:
            self._listeners[event].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(event, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, ()))

    def notify(self, event: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, ()))
        if not listeners:
            raise NotificationError(f"no receiver attached for {event!r}")

        failures = 0
        for listener in listeners:
            try:
                listener()
            except Exception:
                failures += 1
                logger.exception("Listener failed", extra={"event": event})
        if failures == len(listeners):
            raise NotificationError(f"every receiver failed for {event!r}")
