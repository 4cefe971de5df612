"""Pure transitions for the optimistic "my votes" projection.

A projection holds the visitor's votes plus, for every item with a request in
flight, the value it had before the optimistic write. Each transition returns
a new projection and leaves its input untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from anonvote.core.types import Variant

_EMPTY: Mapping[str, Variant | None] = MappingProxyType({})


@dataclass(frozen=True)
class VoteProjection:
    """Immutable snapshot of the local vote table."""

    votes: Mapping[str, Variant] = field(default_factory=lambda: MappingProxyType({}))
    # item_id -> value before the first unconfirmed optimistic write
    pending: Mapping[str, Variant | None] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_votes(cls, votes: Mapping[str, Variant]) -> VoteProjection:
        return cls(votes=MappingProxyType(dict(votes)))

    def _replace(
        self,
        votes: dict[str, Variant] | None = None,
        pending: dict[str, Variant | None] | None = None,
    ) -> VoteProjection:
        return VoteProjection(
            votes=MappingProxyType(votes) if votes is not None else self.votes,
            pending=MappingProxyType(pending) if pending is not None else self.pending,
        )


def apply_optimistic(projection: VoteProjection, item_id: str, variant: Variant) -> VoteProjection:
    """Record a vote before the ledger has confirmed it.

    The prior value is remembered only for the first unconfirmed write, so a
    rollback always returns to the last value the ledger agreed with.
    """
    votes = dict(projection.votes)
    pending = dict(projection.pending)
    if item_id not in pending:
        pending[item_id] = votes.get(item_id)
    votes[item_id] = variant
    return projection._replace(votes=votes, pending=pending)


def apply_reconcile(projection: VoteProjection, item_id: str, variant: Variant) -> VoteProjection:
    """Overwrite an entry with the ledger's canonical variant."""
    votes = dict(projection.votes)
    pending = dict(projection.pending)
    votes[item_id] = variant
    pending.pop(item_id, None)
    return projection._replace(votes=votes, pending=pending)


def apply_rollback(projection: VoteProjection, item_id: str) -> VoteProjection:
    """Undo unconfirmed optimistic writes for an item.

    Removes the entry if the item had no vote before, otherwise restores the
    prior variant. Items without an unconfirmed write are left as they are.
    """
    if item_id not in projection.pending:
        return projection
    votes = dict(projection.votes)
    pending = dict(projection.pending)
    prior = pending.pop(item_id)
    if prior is None:
        votes.pop(item_id, None)
    else:
        votes[item_id] = prior
    return projection._replace(votes=votes, pending=pending)


def apply_confirm(projection: VoteProjection, item_id: str) -> VoteProjection:
    """Forget the rollback point once the ledger agreed with the optimistic value."""
    if item_id not in projection.pending:
        return projection
    pending = dict(projection.pending)
    pending.pop(item_id)
    return projection._replace(pending=pending)
