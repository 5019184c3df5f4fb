"""Qt integration for icon requests.

Only this package imports PyQt6; the orchestrator itself stays Qt-free and
receives a ``QtDispatcher`` when hosted inside a Qt application.
"""

from __future__ import annotations

from .workers import BackgroundTask, QtDispatcher  # noqa: F401
