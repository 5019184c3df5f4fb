"""Captures the log of an icon request run in a bounded in-memory buffer.

The CLI attaches one per invocation and exports it as JSON Lines. Each entry
keeps the emitting thread so background steps can be told apart from
deliveries. With an EventBus, every entry is also published as ``log_record``.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from threading import RLock
from typing import Deque, List, Optional

from services.event_bus import EventBus

__all__ = ["LogEntry", "LoggingService", "LOG_RECORD_EVENT"]

LOG_RECORD_EVENT = "log_record"


@dataclass(frozen=True)
class LogEntry:
    level: str
    name: str
    message: str
    thread: str
    created: float

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEntry":
        return cls(
            level=record.levelname,
            name=record.name,
            message=record.getMessage(),
            thread=record.threadName or "",
            created=record.created,
        )


class _BufferHandler(logging.Handler):
    def __init__(self, sink: "LoggingService", level: int) -> None:
        super().__init__(level)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink.add(LogEntry.from_record(record))
        except Exception:  # noqa: BLE001 - logging module convention
            self.handleError(record)


class LoggingService:
    def __init__(
        self,
        capacity: int = 500,
        *,
        level: int = logging.DEBUG,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._lock = RLock()
        self._buffer: Deque[LogEntry] = deque(maxlen=capacity)
        self._handler = _BufferHandler(self, level)
        self._event_bus = event_bus
        self._logger: Optional[logging.Logger] = None

    def attach(self, logger_name: str | None = None) -> None:
        """Start capturing ``logger_name`` (root when omitted), lowering its level if needed."""
        if self._logger is not None:
            return
        logger = logging.getLogger(logger_name)
        logger.addHandler(self._handler)
        if logger.getEffectiveLevel() > self._handler.level:
            logger.setLevel(self._handler.level)
        self._logger = logger

    def detach(self) -> None:
        if self._logger is not None:
            self._logger.removeHandler(self._handler)
            self._logger = None

    def add(self, entry: LogEntry) -> None:
        with self._lock:
            self._buffer.append(entry)
        if self._event_bus is not None:
            self._event_bus.publish(LOG_RECORD_EVENT, asdict(entry))

    def recent(self, limit: Optional[int] = None) -> List[LogEntry]:
        with self._lock:
            entries = list(self._buffer)
        if limit is None:
            return entries
        return entries[-limit:] if limit > 0 else []

    def filter(self, *, level: str | None = None, name_contains: str | None = None) -> List[LogEntry]:
        matches = self.recent()
        if level:
            matches = [e for e in matches if e.level == level]
        if name_contains:
            matches = [e for e in matches if name_contains in e.name]
        return matches

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def export_jsonl(self, path: str, *, level: str | None = None, append: bool = False) -> int:
        """Write entries (optionally one level only) as JSON Lines; returns the count."""
        entries = self.filter(level=level)
        with open(path, "a" if append else "w", encoding="utf-8") as fh:
            fh.writelines(json.dumps(asdict(e), sort_keys=True) + "\n" for e in entries)
        return len(entries)
