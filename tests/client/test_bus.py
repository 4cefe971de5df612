# tests/client/test_bus.py
from anonvote.client.bus import EVENT_OPTIMISTIC, EVENT_RECONCILE, CoalescingSubscriber, SyncBus


def test_publish_reaches_every_subscriber() -> None:
    bus = SyncBus()
    first, second = [], []
    bus.subscribe(first.append)
    bus.subscribe(second.append)

    event = bus.publish(EVENT_OPTIMISTIC, "x")

    assert first == [event]
    assert second == [event]
    assert event.seq == 1
    assert bus.publish(EVENT_RECONCILE, "x").seq == 2


def test_unsubscribe_handle_and_method() -> None:
    bus = SyncBus()
    seen = []
    unsubscribe = bus.subscribe(seen.append)
    unsubscribe()
    bus.publish(EVENT_OPTIMISTIC, "x")
    assert seen == []
    assert bus.subscriber_count == 0

    bus.subscribe(seen.append)
    bus.unsubscribe(seen.append)
    bus.unsubscribe(seen.append)  # unknown callbacks are ignored
    assert bus.subscriber_count == 0


def test_failing_subscriber_does_not_stop_delivery(caplog) -> None:
    bus = SyncBus()
    seen = []

    def broken(event) -> None:
        raise RuntimeError("render failed")

    bus.subscribe(broken)
    bus.subscribe(seen.append)

    with caplog.at_level("ERROR", logger="anonvote.client.bus"):
        event = bus.publish(EVENT_OPTIMISTIC, "x")

    assert seen == [event]
    assert "failed handling optimistic event" in caplog.text


def test_coalescing_subscriber_refreshes_once_per_burst() -> None:
    bus = SyncBus()
    refreshes = []
    subscriber = CoalescingSubscriber(bus, lambda: refreshes.append(1))

    assert subscriber.flush() is False
    for _ in range(5):
        bus.publish(EVENT_OPTIMISTIC, "x")
    assert subscriber.dirty
    assert subscriber.last_seq == 5

    assert subscriber.flush() is True
    assert subscriber.flush() is False
    assert refreshes == [1]

    subscriber.close()
    bus.publish(EVENT_OPTIMISTIC, "x")
    assert not subscriber.dirty
