"""In-process publish/subscribe channel for local vote cache changes.

Delivery is synchronous and fire-and-forget. Events only say that something
changed; subscribers re-read the cache rather than trusting the payload.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)

EVENT_OPTIMISTIC = "optimistic"
EVENT_RECONCILE = "reconcile"
EVENT_ROLLBACK = "rollback"
EVENT_HYDRATE = "hydrate"
EVENT_MODE = "mode"


@dataclass(frozen=True)
class CacheEvent:
    """Notification that the cache (or the unlock mode) changed."""

    kind: str
    item_id: str | None
    seq: int


Subscriber = Callable[[CacheEvent], None]


class SyncBus:
    """Single global channel observed by every mounted UI surface."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = Lock()
        self._seq = itertools.count(1)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Remove a callback; unknown callbacks are ignored."""
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    def publish(self, kind: str, item_id: str | None = None) -> CacheEvent:
        """Deliver one event to every current subscriber.

        A subscriber that raises is logged and skipped; it never stops
        delivery to the others or fails the publishing call.
        """
        with self._lock:
            event = CacheEvent(kind=kind, item_id=item_id, seq=next(self._seq))
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %s event", callback, kind)
        return event

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class CoalescingSubscriber:
    """Collapse bursts of events into a single re-read.

    Each event only marks the subscriber dirty; `flush` runs the refresh
    callback once no matter how many events arrived since the last flush.
    """

    def __init__(self, bus: SyncBus, refresh: Callable[[], None]) -> None:
        self._refresh = refresh
        self._dirty = False
        self.last_seq = 0
        self._unsubscribe = bus.subscribe(self._mark)

    def _mark(self, event: CacheEvent) -> None:
        self._dirty = True
        self.last_seq = max(self.last_seq, event.seq)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def flush(self) -> bool:
        """Run the refresh callback if anything changed. Returns whether it ran."""
        if not self._dirty:
            return False
        self._dirty = False
        self._refresh()
        return True

    def close(self) -> None:
        self._unsubscribe()
