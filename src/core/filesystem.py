"""Filesystem utility helpers."""

from __future__ import annotations
import logging
import os
import shutil
from typing import Iterable

log = logging.getLogger(__name__)


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def wipe(path: str) -> None:
    """Remove a directory tree if present; missing paths are ignored."""
    if os.path.isdir(path):
        shutil.rmtree(path, ignore_errors=True)
    elif os.path.exists(path):
        os.remove(path)


def write_text(path: str, content: str, encoding: str = "utf-8") -> None:
    dir_part = os.path.dirname(path)
    if dir_part:
        ensure_dir(dir_part)
    with open(path, "w", encoding=encoding) as fh:
        fh.write(content)


def read_text(path: str, encoding: str = "utf-8") -> str:
    with open(path, "r", encoding=encoding) as fh:
        return fh.read()


def delete_quietly(paths: Iterable[str]) -> int:
    """Delete files best-effort, returning how many were removed."""
    removed = 0
    for p in paths:
        try:
            os.remove(p)
        except OSError:
            continue
        removed += 1
        log.debug("Deleted: %s", p)
    return removed
