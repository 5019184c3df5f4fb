"""Streaming parser for icon pack appfilter definitions.

This is deliberately not an XML parser. Appfilter files are scanned line by
line for a fixed set of markers so that hand-edited files with stray text,
unknown tags or broken items still yield every component they define.

Behavior worth knowing:
 - A trimmed line starting with ``<!--`` opens a comment region and a line
   ending with ``-->`` closes it; every line of the region is skipped,
   including anything before the opener on its first line.
 - ``component`` and ``drawable`` values survive across lines until they are
   overwritten; an item is emitted whenever ``/>`` is seen while at least one
   of them is set.
 - Values that are never followed by ``/>`` are dropped.
"""

from __future__ import annotations

import logging
from typing import IO, Iterable, List, Optional, Protocol

from domain.errors import FilterOpenError, FilterReadError, InvalidDrawableError
from domain.models import FilterEntry, FilterParseResult

log = logging.getLogger(__name__)

ITEM_END = "/>"
COMPONENT_START = 'component="ComponentInfo'
DRAWABLE_START = 'drawable="'
VALUE_END = '"'
COMMENT_START = "<!--"
COMMENT_END = "-->"


class AssetOpener(Protocol):
    def open_asset(self, name: str) -> IO[str]: ...  # pragma: no cover - structural


class DrawableResolver(Protocol):
    def has_drawable(self, name: str) -> bool: ...  # pragma: no cover - structural


def _extract(line: str, marker: str) -> Optional[str]:
    start = line.find(marker)
    if start == -1:
        return None
    start += len(marker)
    end = line.find(VALUE_END, start)
    # Unterminated value: keep the rest of the line. For a component this
    # yields ids like "a/b} />" since the closing brace is not at the end.
    return line[start:] if end == -1 else line[start:end]


def _unwrap_component(value: str) -> str:
    if value.startswith("{"):
        value = value[1:]
    if value.endswith("}"):
        value = value[:-1]
    return value


def _resolves(resolver: DrawableResolver, drawable: str) -> bool:
    try:
        return bool(resolver.has_drawable(drawable))
    except Exception as e:  # noqa: BLE001 - a failing lookup counts as no match
        log.debug("Resource lookup for %s failed: %s", drawable, e)
        return False


def parse_appfilter(
    lines: Iterable[str],
    *,
    resolver: DrawableResolver | None = None,
    strict: bool = True,
) -> FilterParseResult:
    """Parse appfilter lines into entries, themed components and diagnostics.

    Diagnostics are only collected when ``strict`` is enabled. The component
    of an emitted item is always considered themed, whatever its drawable.
    """
    entries: List[FilterEntry] = []
    themed: set[str] = set()
    report: List[str] = []

    component: Optional[str] = None
    drawable: Optional[str] = None
    in_comment = False

    for raw in lines:
        line = raw.rstrip("\r\n")
        trimmed = line.strip()
        if not in_comment and trimmed.startswith(COMMENT_START):
            in_comment = True
        if in_comment and trimmed.endswith(COMMENT_END):
            in_comment = False
            continue
        if in_comment:
            continue

        value = _extract(line, COMPONENT_START)
        if value is not None:
            component = _unwrap_component(value)
        value = _extract(line, DRAWABLE_START)
        if value is not None:
            drawable = value

        if ITEM_END not in line or (component is None and drawable is None):
            continue

        log.debug("Found: %s (%s)", component, drawable)
        entries.append(FilterEntry(component=component, drawable=drawable))
        if drawable is None or not drawable.strip():
            log.warning("Drawable for %s was null or empty.", component)
            if strict:
                report.append(f"Drawable for {component} was null or empty.")
        elif resolver is not None and not _resolves(resolver, drawable):
            log.warning(
                "Drawable %s (for %s) doesn't match up with a resource.", drawable, component
            )
            if strict:
                report.append(f"Drawable {drawable} (for {component}) doesn't match up with a resource.")
        if component is not None:
            themed.add(component)

    return FilterParseResult(entries=tuple(entries), themed=frozenset(themed), report=tuple(report))


def load_filter(
    filter_name: str | None,
    opener: AssetOpener,
    *,
    resolver: DrawableResolver | None = None,
    strict: bool = True,
) -> FilterParseResult:
    """Open and parse the named appfilter.

    An empty name disables filtering and returns an empty result without I/O.
    Raises FilterOpenError, FilterReadError or, for strict parses that
    recorded diagnostics, InvalidDrawableError.
    """
    if not filter_name:
        return FilterParseResult.empty()

    log.info("Loading your appfilter, opening: %s", filter_name)
    try:
        stream = opener.open_asset(filter_name)
    except Exception as e:  # noqa: BLE001 - host openers may raise anything
        raise FilterOpenError(
            f"Failed to open your filter: {e}", context={"filter": filter_name}
        ) from e

    with stream:
        try:
            result = parse_appfilter(stream, resolver=resolver, strict=strict)
        except Exception as e:  # noqa: BLE001 - any failure mid-stream is a read failure
            raise FilterReadError(
                f"Failed to read your filter: {e}", context={"filter": filter_name}
            ) from e

    if strict and result.report:
        raise InvalidDrawableError(
            "\n".join(result.report),
            result=result,
            context={"filter": filter_name, "invalid": len(result.report)},
        )
    log.info("Found %d total app(s) in your appfilter.", len(result.themed))
    return result
