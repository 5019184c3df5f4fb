"""Icon request session orchestration.

An ``IconRequest`` is an explicit handle owned by the caller. It loads the
appfilter, asks the host for installed apps that are not themed yet, keeps the
user's selection and, on ``send()``, saves icons, writes manifests, zips
everything and hands the archive to email delivery or the remote backend.

Long-running work goes through ``Dispatcher.run_background``; every callback
and every terminal state change is delivered through ``Dispatcher.post`` so it
lands on the context owning the user-facing state. After ``cleanup()`` the
dispatcher is gone and late deliveries are silently dropped.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from threading import RLock
from typing import Any, Callable, List, Optional

from PIL import Image

from config import settings
from core import archive, filesystem
from core.dispatch import Dispatcher, SyncDispatcher
from core.http_client import RemoteUploader
from domain.errors import (
    ArchiveError,
    DeliveryError,
    FilterError,
    FilterOpenError,
    IconRequestError,
    IconSaveError,
    ManifestWriteError,
    PreconditionError,
    UploadError,
)
from domain.models import App, DeviceInfo, RemoteConfig, RequestConfig, RequestManifest
from parsing import appfilter_parser
from parsing.appfilter_parser import AssetOpener, DrawableResolver
from services.app_source import AppSource
from services.email_delivery import EmailDelivery, EmlDraftDelivery
from services.event_bus import EventBus, RequestEvent
from services.packager import RequestPackager
from services.selection import SelectionSet
from utils import naming

log = logging.getLogger(__name__)


_STEP_ERRORS = {
    "saving": (IconSaveError, "Failed to save an icon"),
    "packaging": (ManifestWriteError, "Failed to write your request files"),
    "archiving": (ArchiveError, "Failed to create the request ZIP file"),
    "uploading": (UploadError, "Failed to send icons to the backend"),
}


def _step_error(step: "RequestState", cause: Exception) -> IconRequestError:
    """Wrap an unexpected failure in the error kind of the send step it hit."""
    kind, message = _STEP_ERRORS[step.value]
    error = kind(f"{message}: {cause}", context={"step": step.value})
    error.__cause__ = cause
    return error


class RequestState(str, Enum):
    IDLE = "idle"
    LOADING_FILTER = "loading_filter"
    LOADING_APPS = "loading_apps"
    READY = "ready"
    SAVING = "saving"
    PACKAGING = "packaging"
    ARCHIVING = "archiving"
    UPLOADING = "uploading"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RequestCallbacks:
    """Live callback references; never persisted, re-attached after restore."""

    on_loading_filter: Optional[Callable[[], None]] = None
    on_apps_load_progress: Optional[Callable[[int], None]] = None
    on_apps_loaded: Optional[Callable[[Optional[List[App]], Optional[Exception]], None]] = None
    on_selection_changed: Optional[Callable[[int], None]] = None
    on_request_preparing: Optional[Callable[[], None]] = None
    on_request_error: Optional[Callable[[Exception], None]] = None
    on_request_sent: Optional[Callable[[], None]] = None
    process_archive_path: Optional[Callable[[str], str]] = None


@dataclass
class HostContext:
    """Collaborators supplied by the hosting environment."""

    app_source: AppSource
    icon_resolver: Any
    assets: Optional[AssetOpener] = None
    resources: Optional[DrawableResolver] = None
    email_delivery: Optional[EmailDelivery] = None
    uploader: Optional[RemoteUploader] = None
    device: Optional[DeviceInfo] = None


class IconRequest:
    def __init__(
        self,
        config: RequestConfig,
        host: HostContext,
        *,
        callbacks: Optional[RequestCallbacks] = None,
        dispatcher: Optional[Dispatcher] = None,
        event_bus: Optional[EventBus] = None,
        apps: Optional[List[App]] = None,
    ) -> None:
        self._lock = RLock()
        self._config = config
        self._host: Optional[HostContext] = host
        self._callbacks: Optional[RequestCallbacks] = callbacks or RequestCallbacks()
        self._dispatcher: Optional[Dispatcher] = dispatcher or SyncDispatcher()
        self._event_bus = event_bus
        self._apps: Optional[List[App]] = list(apps) if apps is not None else None
        self._selection = SelectionSet(self._lock, listener=self._on_selection_changed)
        self._state = RequestState.READY if apps is not None else RequestState.IDLE
        self._last_error: Optional[Exception] = None
        self._released = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def config(self) -> RequestConfig:
        return self._config

    @property
    def callbacks(self) -> Optional[RequestCallbacks]:
        return self._callbacks

    @callbacks.setter
    def callbacks(self, value: RequestCallbacks) -> None:
        with self._lock:
            self._callbacks = value

    @property
    def state(self) -> RequestState:
        with self._lock:
            return self._state

    @property
    def last_error(self) -> Optional[Exception]:
        with self._lock:
            return self._last_error

    @property
    def selection(self) -> SelectionSet:
        return self._selection

    @property
    def apps(self) -> Optional[List[App]]:
        with self._lock:
            return list(self._apps) if self._apps is not None else None

    @property
    def selected_apps(self) -> List[App]:
        return self._selection.snapshot()

    def is_apps_loaded(self) -> bool:
        with self._lock:
            return bool(self._apps)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_app(self, app: App) -> bool:
        return self._selection.select(app)

    def unselect_app(self, app: App) -> bool:
        return self._selection.unselect(app)

    def toggle_app_selected(self, app: App) -> bool:
        return self._selection.toggle(app)

    def is_app_selected(self, app: App) -> bool:
        return self._selection.contains(app)

    def select_all_apps(self) -> "IconRequest":
        with self._lock:
            if self._apps:
                self._selection.select_all(self._apps)
        return self

    def unselect_all_apps(self) -> None:
        self._selection.clear()

    def _on_selection_changed(self, count: int) -> None:
        cb = self._callbacks.on_selection_changed if self._callbacks else None
        if cb is not None:
            cb(count)
        if self._event_bus is not None:
            self._event_bus.publish(RequestEvent.SELECTION_CHANGED, count)

    # ------------------------------------------------------------------
    # Delivery helpers
    # ------------------------------------------------------------------
    def _post(self, fn: Callable[[], None]) -> None:
        with self._lock:
            dispatcher = self._dispatcher
        if dispatcher is None:
            log.debug("Request was cleaned up; dropping delivery.")
            return
        dispatcher.post(fn)

    def _callback(self, name: str) -> Optional[Callable[..., Any]]:
        with self._lock:
            if self._released or self._callbacks is None:
                return None
            return getattr(self._callbacks, name)

    def _deliver(self, name: str, *args: Any) -> None:
        def run() -> None:
            cb = self._callback(name)
            if cb is not None:
                cb(*args)

        self._post(run)

    def _set_state(self, state: RequestState) -> None:
        with self._lock:
            if self._released:
                return
            self._state = state
        log.debug("Request state -> %s", state.value)
        bus = self._event_bus
        if bus is not None:
            self._post(partial(bus.publish, RequestEvent.STATE_CHANGED, state))

    def _require_active(self) -> None:
        if self._released:
            raise PreconditionError("This request has been cleaned up.")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_apps(self) -> None:
        """Load the appfilter and the unthemed installed apps in the background.

        Raises PreconditionError right away when no ``on_apps_loaded``
        callback is registered.
        """
        with self._lock:
            self._require_active()
            if self._callbacks is None or self._callbacks.on_apps_loaded is None:
                raise PreconditionError("No load callback has been set.")
            self._set_state(RequestState.LOADING_FILTER)
            if self._callbacks.on_loading_filter is not None:
                self._callbacks.on_loading_filter()
            dispatcher = self._dispatcher
            host = self._host
            config = self._config
        dispatcher.run_background(partial(self._load_in_background, host, config))

    def _load_in_background(self, host: HostContext, config: RequestConfig) -> None:
        try:
            if config.filter_name and host.assets is None:
                raise FilterOpenError(
                    "Failed to open your filter: no asset source configured.",
                    context={"filter": config.filter_name},
                )
            result = appfilter_parser.load_filter(
                config.filter_name,
                host.assets,  # type: ignore[arg-type]
                resolver=host.resources,
                strict=config.strict_drawables,
            )
        except FilterError as e:
            log.error("Loading the appfilter failed: %s", e)
            self._post(partial(self._finish_load, None, e))
            return

        self._set_state(RequestState.LOADING_APPS)
        log.info("Loading unthemed installed apps...")
        try:
            apps = host.app_source.installed_apps(
                result.themed, lambda percent: self._deliver("on_apps_load_progress", percent)
            )
        except Exception as e:  # noqa: BLE001 - enumeration is a host collaborator
            log.error("Loading installed apps failed: %s", e)
            self._post(partial(self._finish_load, None, e))
            return
        self._post(partial(self._finish_load, apps, None))

    def _finish_load(self, apps: Optional[List[App]], error: Optional[Exception]) -> None:
        with self._lock:
            if self._released:
                return
            if error is None:
                self._apps = list(apps or [])
                self._last_error = None
            else:
                self._last_error = error
            cb = self._callbacks.on_apps_loaded if self._callbacks else None
        self._set_state(RequestState.READY if error is None else RequestState.FAILED)
        if self._event_bus is not None and error is None:
            self._event_bus.publish(RequestEvent.APPS_LOADED, len(apps or []))
        if cb is not None:
            cb(self.apps if error is None else None, error)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------
    def _reject(self, message: str, cause: Optional[BaseException] = None) -> None:
        err = PreconditionError(message)
        err.__cause__ = cause
        log.error(message)
        with self._lock:
            self._last_error = err
            has_callback = self._callbacks is not None and self._callbacks.on_request_error
        if not has_callback:
            raise err
        self._deliver("on_request_error", err)

    def send(self) -> None:
        """Validate the request and run the send cycle in the background."""
        with self._lock:
            self._require_active()
            log.info("Preparing your request to send...")
            if self._callbacks is not None and self._callbacks.on_request_preparing is not None:
                self._callbacks.on_request_preparing()

            config = self._config
            problem: Optional[str] = None
            if self._apps is None:
                problem = "No apps were loaded from this device."
            elif not len(self._selection):
                problem = "No apps have been selected for sending in the request."
            elif not config.email and config.remote is None:
                problem = "The recipient email for the request cannot be empty."
            if problem is not None:
                self._reject(problem)
                return
            if not config.subject or not config.subject.strip():
                log.info("Using default email subject.")
                config = replace(config, subject=settings.DEFAULT_SUBJECT)

            try:
                filesystem.ensure_dir(config.work_dir)
            except OSError as e:
                self._reject(f"Unable to create folders: {config.work_dir}", cause=e)
                return

            apps = self._selection.snapshot()
            host = self._host
            dispatcher = self._dispatcher
            self._set_state(RequestState.SAVING)
        dispatcher.run_background(partial(self._send_in_background, host, config, apps))

    def _send_in_background(
        self, host: HostContext, config: RequestConfig, apps: List[App]
    ) -> None:
        packager = RequestPackager(config, host.device)
        files: List[str] = []
        step = RequestState.SAVING
        try:
            self._save_icons(host, config, apps, files)
            step = RequestState.PACKAGING
            self._set_state(step)
            manifest = packager.build_manifest(apps)
            files.extend(self._write_manifests(config, manifest))
            step = RequestState.ARCHIVING
            self._set_state(step)
            zip_path = os.path.join(config.work_dir, naming.archive_filename())
            try:
                archive.zip_files(zip_path, files)
            finally:
                log.info("Cleaning up files...")
                filesystem.delete_quietly(files)
            if config.remote is not None:
                step = RequestState.UPLOADING
                self._set_state(step)
                self._upload(host, config.remote, zip_path, manifest)
            body = packager.build_body(apps)
        except IconRequestError as e:
            self._abort_send(e, files)
            return
        except Exception as e:  # noqa: BLE001 - host collaborators may raise anything
            self._abort_send(_step_error(step, e), files)
            return
        self._post(partial(self._complete_send, host, config, zip_path, body))

    def _abort_send(self, error: IconRequestError, files: List[str]) -> None:
        log.error("Sending the request failed: %s", error)
        # Loose files of an unfinished cycle; already-archived ones are gone
        filesystem.delete_quietly(files)
        self._post(partial(self._fail_send, error))

    def _save_icons(
        self, host: HostContext, config: RequestConfig, apps: List[App], files: List[str]
    ) -> None:
        """Write each bitmap icon into the work dir, appending saved paths to ``files``."""
        log.info("Saving icons...")
        taken: set[str] = set()
        for app in apps:
            try:
                icon = app.get_icon(host.icon_resolver)
                if not isinstance(icon, Image.Image):
                    log.info("Icon for %s didn't return a bitmap.", app.component)
                    continue
                filename = naming.icon_filename(app.package, taken)
                taken.add(filename)
                path = os.path.join(config.work_dir, filename)
                icon.save(path, "PNG")
            except Exception as e:  # noqa: BLE001 - resolvers and encoders are host code
                raise IconSaveError(
                    f"Failed to save an icon: {e}", context={"component": app.component}
                ) from e
            files.append(path)
            log.debug("Saved icon: %s", path)

    def _write_manifests(self, config: RequestConfig, manifest: RequestManifest) -> List[str]:
        written: List[str] = []
        targets = [(settings.XML_MANIFEST_NAME, manifest.xml)]
        if config.remote is None:
            targets.append((settings.JSON_MANIFEST_NAME, manifest.json))
        for name, text in targets:
            if text is None:
                continue
            path = os.path.join(config.work_dir, name)
            try:
                filesystem.write_text(path, text)
            except OSError as e:
                raise ManifestWriteError(
                    f"Failed to write your request {name} file: {e}", context={"path": path}
                ) from e
            written.append(path)
            log.info("Generated %s saved to %s", name, path)
        return written

    def _upload(
        self, host: HostContext, remote: RemoteConfig, zip_path: str, manifest: RequestManifest
    ) -> None:
        uploader = host.uploader or RemoteUploader()
        uploader.upload(remote, zip_path, manifest.json or '{"components": []}')

    def _email_archive(
        self, host: HostContext, config: RequestConfig, zip_path: str, body: str
    ) -> None:
        path = zip_path
        delivery = host.email_delivery or EmlDraftDelivery()
        try:
            hook = self._callback("process_archive_path")
            if hook is not None:
                path = hook(path)
            log.info("Handing the request off to email delivery...")
            delivery.deliver(path, config.email or "", config.subject or "", body)
        except Exception as e:  # noqa: BLE001 - delivery runs host code on the delivery context
            raise DeliveryError(
                f"Failed to prepare the request email: {e}", context={"archive": path}
            ) from e

    def _complete_send(
        self, host: HostContext, config: RequestConfig, zip_path: str, body: str
    ) -> None:
        with self._lock:
            if self._released:
                return
        self._set_state(RequestState.DELIVERING)
        if config.remote is None:
            try:
                self._email_archive(host, config, zip_path, body)
            except IconRequestError as e:
                log.error("Sending the request failed: %s", e)
                self._fail_send(e)
                return
        with self._lock:
            self._last_error = None
        log.info("Done!")
        self._set_state(RequestState.DONE)
        if self._event_bus is not None:
            self._event_bus.publish(RequestEvent.REQUEST_SENT, zip_path)
        cb = self._callback("on_request_sent")
        if cb is not None:
            cb()

    def _fail_send(self, error: IconRequestError) -> None:
        with self._lock:
            if self._released:
                return
            self._last_error = error
        self._set_state(RequestState.FAILED)
        if self._event_bus is not None:
            self._event_bus.publish(RequestEvent.REQUEST_FAILED, str(error))
        cb = self._callback("on_request_error")
        if cb is not None:
            cb(error)
        else:
            log.error("No request error callback registered; request failed: %s", error)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def cleanup(self) -> None:
        """Sever collaborators and state. Running background work is not
        interrupted; its completions become no-ops."""
        with self._lock:
            if self._released:
                return
            self._selection.listener = None
            self._selection.clear()
            self._apps = None
            self._host = None
            self._dispatcher = None
            self._callbacks = None
            self._state = RequestState.IDLE
            self._released = True


class RequestBuilder:
    """Fluent assembly of a RequestConfig plus its live callbacks.

    Creating a builder wipes the work directory, which is owned exclusively
    by the request built from it.
    """

    def __init__(self, work_dir: str | None = None) -> None:
        work_dir = work_dir or naming.work_dir()
        filesystem.wipe(work_dir)
        self._config = RequestConfig(work_dir=work_dir)
        self._callbacks = RequestCallbacks()

    def _set(self, **changes: Any) -> "RequestBuilder":
        self._config = replace(self._config, **changes)
        return self

    @staticmethod
    def _format(text: Optional[str], args: tuple) -> Optional[str]:
        if text is not None and args:
            return text % args
        return text

    def filter_name(self, name: str) -> "RequestBuilder":
        return self._set(filter_name=name)

    def filter_off(self) -> "RequestBuilder":
        return self._set(filter_name=None)

    def to_email(self, email: str) -> "RequestBuilder":
        return self._set(email=email)

    def with_subject(self, subject: Optional[str], *args: Any) -> "RequestBuilder":
        return self._set(subject=self._format(subject, args))

    def with_header(self, header: Optional[str], *args: Any) -> "RequestBuilder":
        return self._set(header=self._format(header, args))

    def with_footer(self, footer: Optional[str], *args: Any) -> "RequestBuilder":
        return self._set(footer=self._format(footer, args))

    def include_device_info(self, include: bool) -> "RequestBuilder":
        return self._set(include_device_info=include)

    def generate_xml(self, generate: bool) -> "RequestBuilder":
        return self._set(generate_xml=generate)

    def generate_json(self, generate: bool) -> "RequestBuilder":
        return self._set(generate_json=generate)

    def error_on_invalid_drawables(self, error: bool) -> "RequestBuilder":
        return self._set(strict_drawables=error)

    def remote_config(self, remote: Optional[RemoteConfig]) -> "RequestBuilder":
        return self._set(remote=remote)

    def callbacks(self, **callbacks: Any) -> "RequestBuilder":
        self._callbacks = replace(self._callbacks, **callbacks)
        return self

    @property
    def config(self) -> RequestConfig:
        return self._config

    def build(
        self,
        host: HostContext,
        *,
        dispatcher: Optional[Dispatcher] = None,
        event_bus: Optional[EventBus] = None,
    ) -> IconRequest:
        return IconRequest(
            self._config,
            host,
            callbacks=replace(self._callbacks),
            dispatcher=dispatcher,
            event_bus=event_bus,
        )
