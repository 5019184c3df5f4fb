"""Background worker threads and UI-thread delivery for icon requests."""

from __future__ import annotations
import logging
import traceback
from typing import List

from PyQt6.QtCore import QObject, QThread, Qt, pyqtSignal

from core.dispatch import Task

log = logging.getLogger(__name__)


class BackgroundTask(QThread):
    failed = pyqtSignal(str)  # traceback text

    def __init__(self, fn: Task):
        super().__init__()
        self._fn = fn

    def run(self) -> None:  # type: ignore[override]
        try:
            self._fn()
        except Exception:  # noqa: BLE001 - surfaced through the failed signal
            text = traceback.format_exc()
            log.error("Background task failed:\n%s", text)
            self.failed.emit(text)


class _Poster(QObject):
    posted = pyqtSignal(object)

    def __init__(self):
        super().__init__()
        self.posted.connect(self._run, Qt.ConnectionType.QueuedConnection)

    def _run(self, fn: Task) -> None:
        fn()


class QtDispatcher:
    """Dispatcher running work on one-shot QThreads.

    Posted callables run on the thread that constructed the dispatcher, once
    its event loop processes them.
    """

    def __init__(self) -> None:
        self._poster = _Poster()
        self._tasks: List[BackgroundTask] = []

    def run_background(self, fn: Task) -> None:
        self._tasks = [t for t in self._tasks if t.isRunning()]
        task = BackgroundTask(fn)
        self._tasks.append(task)
        task.start()

    def post(self, fn: Task) -> None:
        self._poster.posted.emit(fn)

    def wait(self, msecs: int = 5000) -> bool:
        """Block until running tasks finish; returns False on timeout."""
        return all(t.wait(msecs) for t in list(self._tasks))
