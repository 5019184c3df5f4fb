from services.event_bus import EventBus, RequestEvent


def test_subscribe_publish_basic():
    bus = EventBus()
    received = []

    def handler(evt):
        received.append((evt.name, evt.payload))

    bus.subscribe(RequestEvent.REQUEST_SENT, handler)
    bus.publish(RequestEvent.REQUEST_SENT, "/tmp/IconRequest.zip")
    assert received == [(RequestEvent.REQUEST_SENT.value, "/tmp/IconRequest.zip")]


def test_once_subscription():
    bus = EventBus()
    count = 0

    def incr(_):
        nonlocal count
        count += 1

    bus.subscribe(RequestEvent.APPS_LOADED, incr, once=True)
    bus.publish(RequestEvent.APPS_LOADED, 3)
    bus.publish(RequestEvent.APPS_LOADED, 3)
    assert count == 1
    assert bus.subscriber_count(RequestEvent.APPS_LOADED) == 0


def test_error_isolation():
    bus = EventBus()
    order = []

    def bad(_):
        order.append("bad")
        raise RuntimeError("boom")

    def good(_):
        order.append("good")

    bus.subscribe("custom", bad)
    bus.subscribe("custom", good)
    bus.publish("custom", 123)
    assert order == ["bad", "good"]
    assert len(bus.errors) == 1
    assert isinstance(bus.errors[0][1], RuntimeError)


def test_unsubscribe_and_cancel():
    bus = EventBus()
    hits = []
    sub = bus.subscribe(RequestEvent.STATE_CHANGED, hits.append)
    other = bus.subscribe(RequestEvent.STATE_CHANGED, hits.append)
    other.cancel()
    bus.publish(RequestEvent.STATE_CHANGED, "ready")
    assert len(hits) == 1
    bus.unsubscribe(sub)
    bus.publish(RequestEvent.STATE_CHANGED, "done")
    assert len(hits) == 1


def test_handler_may_subscribe_during_publish():
    bus = EventBus()
    late = []

    def first(_):
        bus.subscribe("x", late.append)

    bus.subscribe("x", first)
    bus.publish("x", 1)
    assert late == []
    bus.publish("x", 2)
    assert [e.payload for e in late] == [2]


def test_clear():
    bus = EventBus()
    bus.subscribe("x", lambda e: None)
    bus.clear()
    assert bus.subscriber_count("x") == 0
