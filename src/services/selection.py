"""Ordered, duplicate-free selection of apps with size-change notification."""

from __future__ import annotations

from threading import RLock
from typing import Callable, Iterable, Iterator, List, Optional

from domain.models import App

SelectionListener = Callable[[int], None]


class SelectionSet:
    """Selected apps in insertion order.

    Every effective mutation notifies ``listener`` with the new size; batch
    operations notify once and no-op mutations never notify. The lock is
    shared with the owning request so selection and app list stay consistent.
    """

    def __init__(
        self, lock: Optional[RLock] = None, listener: Optional[SelectionListener] = None
    ) -> None:
        self._lock = lock or RLock()
        self._apps: List[App] = []
        self._components: set[str] = set()
        self.listener = listener

    def _notify(self) -> None:
        if self.listener is not None:
            self.listener(len(self._apps))

    def _add(self, app: App) -> bool:
        if app.component in self._components:
            return False
        self._apps.append(app)
        self._components.add(app.component)
        return True

    # Mutation ---------------------------------------------------------
    def select(self, app: App) -> bool:
        with self._lock:
            added = self._add(app)
            if added:
                self._notify()
            return added

    def unselect(self, app: App) -> bool:
        with self._lock:
            if app.component not in self._components:
                return False
            self._apps.remove(app)
            self._components.discard(app.component)
            self._notify()
            return True

    def toggle(self, app: App) -> bool:
        """Flip membership; returns True when the app ends up selected."""
        with self._lock:
            if self.contains(app):
                self.unselect(app)
                return False
            self.select(app)
            return True

    def select_all(self, candidates: Iterable[App]) -> int:
        with self._lock:
            added = sum(1 for app in candidates if self._add(app))
            if added:
                self._notify()
            return added

    def clear(self) -> None:
        with self._lock:
            if not self._apps:
                return
            self._apps.clear()
            self._components.clear()
            self._notify()

    def restore(self, apps: Iterable[App]) -> None:
        """Replace contents (e.g. after state restore), notifying once if non-empty."""
        with self._lock:
            self._apps.clear()
            self._components.clear()
            for app in apps:
                self._add(app)
            if self._apps:
                self._notify()

    # Queries ----------------------------------------------------------
    def contains(self, app: App) -> bool:
        with self._lock:
            return app.component in self._components

    def snapshot(self) -> List[App]:
        with self._lock:
            return list(self._apps)

    def __contains__(self, app: object) -> bool:
        return isinstance(app, App) and self.contains(app)

    def __len__(self) -> int:
        with self._lock:
            return len(self._apps)

    def __iter__(self) -> Iterator[App]:
        return iter(self.snapshot())
