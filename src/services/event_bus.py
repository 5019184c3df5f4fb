"""Synchronous publish/subscribe for request lifecycle events.

Handlers receive an ``Event`` on the thread that publishes it; the request
orchestrator publishes from its delivery context. A raising handler does not
stop delivery to the others; the failure is recorded on ``errors``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import Any, Callable, List, Tuple

log = logging.getLogger(__name__)

__all__ = ["RequestEvent", "Event", "EventBus", "Subscription"]


class RequestEvent(str, Enum):
    STATE_CHANGED = "state_changed"
    SELECTION_CHANGED = "selection_changed"
    APPS_LOADED = "apps_loaded"
    REQUEST_SENT = "request_sent"
    REQUEST_FAILED = "request_failed"


def _key(name: str | RequestEvent) -> str:
    return name.value if isinstance(name, RequestEvent) else str(name)


@dataclass(frozen=True)
class Event:
    name: str
    payload: Any = None
    created: float = field(default_factory=time.time)


@dataclass(eq=False)
class Subscription:
    event: str
    handler: Callable[[Event], None]
    once: bool = False
    active: bool = True

    def cancel(self) -> None:
        self.active = False


class EventBus:
    def __init__(self) -> None:
        self._lock = RLock()
        self._subscriptions: List[Subscription] = []
        self._errors: List[Tuple[Event, Exception]] = []

    def subscribe(
        self,
        name: str | RequestEvent,
        handler: Callable[[Event], None],
        *,
        once: bool = False,
    ) -> Subscription:
        sub = Subscription(_key(name), handler, once)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.cancel()
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s is not sub]

    def publish(self, name: str | RequestEvent, payload: Any = None) -> Event:
        """Deliver to current subscribers; handlers added meanwhile wait for the next publish."""
        event = Event(_key(name), payload)
        with self._lock:
            targets = [s for s in self._subscriptions if s.event == event.name]
        for sub in targets:
            if not sub.active:
                continue
            if sub.once:
                self.unsubscribe(sub)
            try:
                sub.handler(event)
            except Exception as exc:  # noqa: BLE001 - recorded, other handlers still run
                log.warning("Handler for %s failed: %s", event.name, exc)
                with self._lock:
                    self._errors.append((event, exc))
        return event

    def subscriber_count(self, name: str | RequestEvent) -> int:
        key = _key(name)
        with self._lock:
            return sum(1 for s in self._subscriptions if s.event == key and s.active)

    @property
    def errors(self) -> List[Tuple[Event, Exception]]:
        with self._lock:
            return list(self._errors)

    def clear(self) -> None:
        with self._lock:
            for sub in self._subscriptions:
                sub.cancel()
            self._subscriptions.clear()
            self._errors.clear()
