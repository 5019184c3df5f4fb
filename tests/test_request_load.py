import pytest

from domain.errors import FilterOpenError, InvalidDrawableError, PreconditionError
from services.event_bus import EventBus, RequestEvent
from services.request import RequestBuilder, RequestState
from tests.factories import RaisingAssets, StringAssets, installed_apps, make_host


class QueuedDispatcher:
    """Runs background work inline but holds deliveries until flushed."""

    def __init__(self):
        self.pending = []

    def run_background(self, fn):
        fn()

    def post(self, fn):
        self.pending.append(fn)

    def flush(self):
        pending, self.pending = self.pending, []
        for fn in pending:
            fn()


def _builder(tmp_path, **callbacks):
    return RequestBuilder(str(tmp_path / "work")).callbacks(**callbacks)


def test_load_without_callback_raises(tmp_path):
    request = _builder(tmp_path).build(make_host())
    with pytest.raises(PreconditionError, match="No load callback"):
        request.load_apps()
    assert request.state is RequestState.IDLE


def test_load_excludes_themed_apps(tmp_path):
    loaded = []
    progress = []
    started = []
    request = _builder(
        tmp_path,
        on_loading_filter=lambda: started.append(True),
        on_apps_load_progress=progress.append,
        on_apps_loaded=lambda apps, err: loaded.append((apps, err)),
    ).build(make_host())

    request.load_apps()

    apps, err = loaded[0]
    assert err is None
    assert [a.name for a in apps] == ["Camera Plus!", "Dialer"]
    assert started == [True]
    assert progress == [25, 50, 75, 100]
    assert request.state is RequestState.READY
    assert request.is_apps_loaded()


def test_load_with_filter_off_returns_everything(tmp_path):
    loaded = []
    assets = StringAssets({})
    builder = _builder(tmp_path, on_apps_loaded=lambda apps, err: loaded.append(apps)).filter_off()
    request = builder.build(make_host(assets=assets))
    request.load_apps()
    assert len(loaded[0]) == 4
    assert assets.opened == []


def test_missing_filter_fails_load(tmp_path):
    results = []
    request = (
        _builder(tmp_path, on_apps_loaded=lambda apps, err: results.append((apps, err)))
        .filter_name("does-not-exist.xml")
        .build(make_host())
    )
    request.load_apps()
    apps, err = results[0]
    assert apps is None
    assert isinstance(err, FilterOpenError)
    assert request.state is RequestState.FAILED
    assert request.last_error is err
    assert not request.is_apps_loaded()


def test_invalid_drawables_fail_load_when_strict(tmp_path):
    text = '<item component="ComponentInfo{com.alpha/com.alpha.Main}" drawable="" />\n'
    results = []
    host = make_host(assets=StringAssets({"appfilter.xml": text}))
    request = _builder(tmp_path, on_apps_loaded=lambda apps, err: results.append(err)).build(host)
    request.load_apps()
    assert isinstance(results[0], InvalidDrawableError)
    assert "was null or empty" in str(results[0])


def test_invalid_drawables_tolerated_when_lenient(tmp_path):
    text = '<item component="ComponentInfo{com.alpha/com.alpha.Main}" drawable="" />\n'
    results = []
    host = make_host(assets=StringAssets({"appfilter.xml": text}))
    request = (
        _builder(tmp_path, on_apps_loaded=lambda apps, err: results.append((apps, err)))
        .error_on_invalid_drawables(False)
        .build(host)
    )
    request.load_apps()
    apps, err = results[0]
    assert err is None
    assert "com.alpha/com.alpha.Main" not in {a.component for a in apps}


def test_enumeration_failure_is_reported(tmp_path):
    class Broken:
        def installed_apps(self, themed, progress):
            raise RuntimeError("package manager died")

    results = []
    host = make_host()
    host.app_source = Broken()
    request = _builder(tmp_path, on_apps_loaded=lambda apps, err: results.append(err)).build(host)
    request.load_apps()
    assert isinstance(results[0], RuntimeError)
    assert request.state is RequestState.FAILED


def test_load_publishes_state_events(tmp_path):
    bus = EventBus()
    states = []
    loaded = []
    bus.subscribe(RequestEvent.STATE_CHANGED, lambda evt: states.append(evt.payload))
    bus.subscribe(RequestEvent.APPS_LOADED, lambda evt: loaded.append(evt.payload))
    request = _builder(tmp_path, on_apps_loaded=lambda apps, err: None).build(
        make_host(), event_bus=bus
    )
    request.load_apps()
    assert states == [RequestState.LOADING_FILTER, RequestState.LOADING_APPS, RequestState.READY]
    assert loaded == [2]


def test_deliveries_after_cleanup_are_dropped(tmp_path):
    dispatcher = QueuedDispatcher()
    loaded = []
    request = _builder(tmp_path, on_apps_loaded=lambda apps, err: loaded.append(apps)).build(
        make_host(), dispatcher=dispatcher
    )
    request.load_apps()
    assert dispatcher.pending
    request.cleanup()
    dispatcher.flush()
    assert loaded == []
    assert request.apps is None
    assert request.state is RequestState.IDLE
    with pytest.raises(PreconditionError):
        request.load_apps()


def test_selection_changes_notify_callback_and_bus(tmp_path):
    bus = EventBus()
    sizes = []
    published = []
    bus.subscribe(RequestEvent.SELECTION_CHANGED, lambda evt: published.append(evt.payload))
    request = _builder(
        tmp_path, on_apps_loaded=lambda apps, err: None, on_selection_changed=sizes.append
    ).build(make_host(apps=installed_apps()), event_bus=bus)
    request.load_apps()
    camera, dialer = request.apps
    request.select_app(camera)
    assert request.toggle_app_selected(dialer) is True
    assert request.is_app_selected(dialer)
    request.unselect_app(camera)
    request.select_all_apps()
    request.unselect_all_apps()
    assert sizes == [1, 2, 1, 2, 0]
    assert published == sizes


def test_opener_raising_unexpected_error_fails_load(tmp_path):
    results = []
    host = make_host(assets=RaisingAssets(ValueError("embedded null byte")))
    request = _builder(tmp_path, on_apps_loaded=lambda apps, err: results.append((apps, err))).build(host)
    request.load_apps()
    apps, err = results[0]
    assert apps is None
    assert isinstance(err, FilterOpenError)
    assert "embedded null byte" in str(err)
    assert request.state is RequestState.FAILED
