"""Save/restore of a request's configuration, loaded apps and selection (JSON).

Callbacks, collaborators and cached icons are not persisted; they are
re-attached by the caller on restore.
"""

from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, Optional

from core.dispatch import Dispatcher
from domain.models import App, RequestConfig
from services.event_bus import EventBus
from services.request import HostContext, IconRequest, RequestCallbacks

log = logging.getLogger(__name__)

FILENAME = "icon_request_state.json"


def save_state(request: IconRequest, path: str) -> None:
    apps = request.apps
    payload: Dict[str, Any] = {
        "config": request.config.to_dict(),
        "apps": [a.to_dict() for a in apps] if apps is not None else None,
        "selected_apps": [a.to_dict() for a in request.selected_apps],
    }
    dir_part = os.path.dirname(path)
    if dir_part:
        os.makedirs(dir_part, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    log.debug("Saved request state to %s", path)


def restore_state(
    path: str,
    host: HostContext,
    *,
    callbacks: Optional[RequestCallbacks] = None,
    dispatcher: Optional[Dispatcher] = None,
    event_bus: Optional[EventBus] = None,
) -> Optional[IconRequest]:
    """Rebuild a request saved with ``save_state``; ``None`` when nothing was saved.

    A non-empty restored selection notifies the selection listener once.
    """
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    config = RequestConfig.from_dict(raw.get("config") or {})
    apps_raw = raw.get("apps")
    apps = [App.from_dict(a) for a in apps_raw] if apps_raw is not None else []
    request = IconRequest(
        config,
        host,
        callbacks=callbacks,
        dispatcher=dispatcher,
        event_bus=event_bus,
        apps=apps,
    )
    request.selection.restore(App.from_dict(a) for a in raw.get("selected_apps") or [])
    log.debug("Restored request state from %s", path)
    return request
