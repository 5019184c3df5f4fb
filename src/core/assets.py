"""Directory-backed asset access for appfilter loading and drawable lookup."""

from __future__ import annotations

import os
from typing import IO

_IMAGE_EXTENSIONS = (".png", ".webp", ".jpg", ".jpeg", ".xml")


class AssetDirectory:
    """Serves named assets and drawable names from an icon pack checkout.

    ``assets_dir`` holds the appfilter; ``res_dir`` (optional) holds
    ``drawable*`` folders whose file stems are the resolvable drawables.
    """

    def __init__(self, assets_dir: str, res_dir: str | None = None) -> None:
        self.assets_dir = assets_dir
        self.res_dir = res_dir
        self._drawables: set[str] | None = None

    def open_asset(self, name: str) -> IO[str]:
        return open(os.path.join(self.assets_dir, name), "r", encoding="utf-8")

    def has_drawable(self, name: str) -> bool:
        return name in self.drawables()

    def drawables(self) -> set[str]:
        if self._drawables is None:
            self._drawables = self._scan()
        return self._drawables

    def _scan(self) -> set[str]:
        found: set[str] = set()
        if not self.res_dir or not os.path.isdir(self.res_dir):
            return found
        # A drawable folder may be passed directly instead of its res/ parent
        if os.path.basename(os.path.normpath(self.res_dir)).startswith("drawable"):
            folders = [self.res_dir]
        else:
            folders = [
                os.path.join(self.res_dir, entry)
                for entry in os.listdir(self.res_dir)
                if entry.startswith("drawable")
            ]
        for folder in folders:
            if not os.path.isdir(folder):
                continue
            for fname in os.listdir(folder):
                stem, ext = os.path.splitext(fname)
                if ext.lower() in _IMAGE_EXTENSIONS:
                    found.add(stem)
        return found
