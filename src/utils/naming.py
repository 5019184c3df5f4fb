"""Centralized naming utilities for generated drawables and request files."""

from __future__ import annotations

import os
import re
from datetime import date
from config import settings

_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]+")


def drawable_name(app_name: str) -> str:
    """Derive a drawable resource name from an app's display name.

    ``"Google Play Music!"`` becomes ``google_play_music_``; edge runs are kept.
    """
    return _NON_ALNUM_PATTERN.sub("_", app_name.lower())


def icon_filename(package: str, taken: set[str]) -> str:
    """Return ``<package>.png``, suffixed ``_2``, ``_3``... when already taken."""
    candidate = f"{package}{settings.ICON_EXTENSION}"
    index = 1
    while candidate in taken:
        index += 1
        candidate = f"{package}_{index}{settings.ICON_EXTENSION}"
    return candidate


def archive_filename(day: date | None = None) -> str:
    day = day or date.today()
    return settings.ARCHIVE_NAME_TEMPLATE.format(date=day.strftime(settings.ARCHIVE_DATE_FORMAT))


def work_dir() -> str:
    return os.path.abspath(settings.WORK_DIR)
