"""Installed app enumeration and icon loading collaborators.

The request orchestrator only depends on the two protocols below; the
concrete classes cover headless use where the installed app inventory was
exported to JSON (e.g. from ``adb shell pm``) together with extracted icons.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from PIL import Image

from domain.models import App, DeviceInfo

log = logging.getLogger(__name__)

ProgressSink = Callable[[int], None]


class AppSource(Protocol):
    def installed_apps(
        self, themed: frozenset[str], progress: ProgressSink
    ) -> List[App]: ...  # pragma: no cover - structural


def _filter_unthemed(
    apps: Iterable[App], themed: frozenset[str], progress: ProgressSink
) -> List[App]:
    candidates = list(apps)
    total = len(candidates)
    result: List[App] = []
    last_percent = -1
    for index, app in enumerate(candidates, start=1):
        if app.component not in themed:
            result.append(app)
        percent = int(index * 100 / total)
        if percent != last_percent:
            progress(percent)
            last_percent = percent
    result.sort(key=lambda a: a.name.lower())
    log.info("Loaded %d unthemed app(s) out of %d installed.", len(result), total)
    return result


class StaticAppSource:
    """App source over an in-memory list."""

    def __init__(self, apps: Iterable[App]) -> None:
        self._apps = list(apps)

    def installed_apps(self, themed: frozenset[str], progress: ProgressSink) -> List[App]:
        return _filter_unthemed(self._apps, themed, progress)


class JsonAppSource:
    """App source reading an exported inventory file.

    Accepted shapes: a list of app objects, or ``{"apps": [...], "device": {...}}``.
    Each app needs ``component``; ``name``, ``package`` and ``icon`` are optional.
    Malformed entries are logged and skipped.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._raw: Any = None

    def _load(self) -> Any:
        if self._raw is None:
            with open(self.path, "r", encoding="utf-8") as fh:
                self._raw = json.load(fh)
        return self._raw

    def _app_objects(self) -> list:
        raw = self._load()
        if isinstance(raw, dict):
            return list(raw.get("apps", []))
        return list(raw)

    def installed_apps(self, themed: frozenset[str], progress: ProgressSink) -> List[App]:
        apps: List[App] = []
        for obj in self._app_objects():
            try:
                apps.append(App.from_dict(obj))
            except (KeyError, TypeError, AttributeError) as e:
                log.warning("Skipping malformed app entry %r: %s", obj, e)
        return _filter_unthemed(apps, themed, progress)

    def device_info(self) -> Optional[DeviceInfo]:
        raw = self._load()
        device: Dict[str, Any] | None = raw.get("device") if isinstance(raw, dict) else None
        if not device:
            return None
        return DeviceInfo.for_android(
            release=str(device.get("release", "")),
            sdk_int=int(device.get("sdk_int", 0)),
            manufacturer=str(device.get("manufacturer", "")),
            model=str(device.get("model", "")),
            product=str(device.get("product", "")),
        )


class FileIconResolver:
    """Loads ``App.icon_ref`` image files with Pillow.

    Apps without an icon file resolve to ``None`` and are skipped when saving.
    """

    def __init__(self, base_dir: str | None = None) -> None:
        self.base_dir = base_dir

    def load_icon(self, app: App) -> Optional[Image.Image]:
        if not app.icon_ref:
            return None
        path = app.icon_ref
        if self.base_dir and not os.path.isabs(path):
            path = os.path.join(self.base_dir, path)
        if not os.path.exists(path):
            log.warning("Icon file for %s not found: %s", app.component, path)
            return None
        with Image.open(path) as im:
            return im.convert("RGBA")
