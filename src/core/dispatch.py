"""Execution contexts used by the request orchestrator.

A dispatcher owns two contexts: the background context running one-shot
load/send work, and the delivery context where callbacks fire and the
user-facing state lives. ``SyncDispatcher`` collapses both onto the calling
thread (CLI, tests); ``gui.workers.QtDispatcher`` uses a QThread per task and
delivers on the Qt thread that created it.
"""

from __future__ import annotations

from typing import Callable, Protocol

Task = Callable[[], None]


class Dispatcher(Protocol):
    def run_background(self, fn: Task) -> None: ...  # pragma: no cover - structural

    def post(self, fn: Task) -> None: ...  # pragma: no cover - structural


class SyncDispatcher:
    """Runs background work and deliveries inline, in call order."""

    def run_background(self, fn: Task) -> None:
        fn()

    def post(self, fn: Task) -> None:
        fn()
