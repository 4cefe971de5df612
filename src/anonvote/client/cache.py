"""Local mirror of the visitor's own votes.

`LocalVoteCache` gives every UI surface synchronous, read-only access to
"did this visitor vote on item X, and how" without a network round trip.
The durable table is only ever changed through `set_optimistic`,
`reconcile` and `rollback` (plus `hydrate` for a cold cache); each change is
persisted and then announced with exactly one bus event.
"""

from __future__ import annotations

import logging

from anonvote.client.bus import (
    EVENT_HYDRATE,
    EVENT_OPTIMISTIC,
    EVENT_RECONCILE,
    EVENT_ROLLBACK,
    SyncBus,
)
from anonvote.client.projection import (
    VoteProjection,
    apply_confirm,
    apply_optimistic,
    apply_reconcile,
    apply_rollback,
)
from anonvote.client.storage import ProfileStorage
from anonvote.core.types import Variant

logger = logging.getLogger(__name__)

VOTES_FIELD = "votes"


class LocalVoteCache:
    """Durable item -> variant table for the current profile.

    The table is loaded from storage on first access and lives for the rest
    of the process; there is no teardown.
    """

    def __init__(self, storage: ProfileStorage, bus: SyncBus) -> None:
        self._storage = storage
        self._bus = bus
        self._projection: VoteProjection | None = None

    @property
    def bus(self) -> SyncBus:
        return self._bus

    def _state(self) -> VoteProjection:
        if self._projection is None:
            self._projection = VoteProjection.from_votes(self._load())
        return self._projection

    def _load(self) -> dict[str, Variant]:
        raw = self._storage.read(VOTES_FIELD, {})
        if not isinstance(raw, dict):
            logger.warning("Discarding malformed local vote table")
            return {}
        votes: dict[str, Variant] = {}
        for item_id, value in raw.items():
            variant = Variant.parse(value)
            if variant is None:
                logger.warning("Dropping local vote on %s with unknown variant %r", item_id, value)
                continue
            votes[str(item_id)] = variant
        return votes

    def _commit(self, projection: VoteProjection, kind: str, item_id: str) -> None:
        # Persist before swapping in memory so a failed write changes nothing.
        if projection.votes != self._state().votes:
            self._storage.write(
                VOTES_FIELD,
                {key: variant.value for key, variant in projection.votes.items()},
            )
        self._projection = projection
        self._bus.publish(kind, item_id)

    # --- reads ----------------------------------------------------------------------
    def get(self, item_id: str) -> Variant | None:
        """Return the cached variant for an item, or None."""
        return self._state().votes.get(item_id)

    def get_all(self) -> dict[str, Variant]:
        """Return a copy of the whole table."""
        return dict(self._state().votes)

    def count(self) -> int:
        """Return how many distinct items have a cached vote."""
        return len(self._state().votes)

    def is_pending(self, item_id: str) -> bool:
        """Return True while an optimistic write awaits the ledger."""
        return item_id in self._state().pending

    # --- transitions ----------------------------------------------------------------
    def set_optimistic(self, item_id: str, variant: Variant) -> None:
        """Record a vote the instant the user casts it."""
        self._commit(apply_optimistic(self._state(), item_id, variant), EVENT_OPTIMISTIC, item_id)

    def reconcile(self, item_id: str, canonical_variant: Variant) -> None:
        """Replace the entry with the ledger's stored variant."""
        self._commit(
            apply_reconcile(self._state(), item_id, canonical_variant),
            EVENT_RECONCILE,
            item_id,
        )

    def rollback(self, item_id: str) -> None:
        """Undo an optimistic write after a hard failure."""
        self._commit(apply_rollback(self._state(), item_id), EVENT_ROLLBACK, item_id)

    def confirm(self, item_id: str) -> None:
        """Drop the rollback point once the ledger agreed. Nothing visible changes."""
        self._projection = apply_confirm(self._state(), item_id)

    def hydrate(self, item_id: str, variant: Variant) -> bool:
        """Fill a missing entry from the ledger. Returns False if one was cached already."""
        if self.get(item_id) is not None:
            return False
        self._commit(apply_reconcile(self._state(), item_id, variant), EVENT_HYDRATE, item_id)
        return True
