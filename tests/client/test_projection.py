# tests/client/test_projection.py
from anonvote.client.projection import (
    VoteProjection,
    apply_confirm,
    apply_optimistic,
    apply_reconcile,
    apply_rollback,
)
from anonvote.core.types import Variant


def test_optimistic_then_rollback_removes_new_entry() -> None:
    start = VoteProjection()
    optimistic = apply_optimistic(start, "x", Variant.A)

    assert optimistic.votes["x"] is Variant.A
    assert "x" in optimistic.pending
    assert dict(start.votes) == {}

    rolled_back = apply_rollback(optimistic, "x")
    assert dict(rolled_back.votes) == {}
    assert dict(rolled_back.pending) == {}


def test_rollback_restores_prior_variant() -> None:
    start = VoteProjection.from_votes({"x": Variant.B})
    rolled_back = apply_rollback(apply_optimistic(start, "x", Variant.A), "x")
    assert rolled_back.votes["x"] is Variant.B


def test_rollback_keeps_first_prior_across_repeated_writes() -> None:
    start = VoteProjection.from_votes({"x": Variant.B})
    state = apply_optimistic(start, "x", Variant.A)
    state = apply_optimistic(state, "x", Variant.B)
    state = apply_optimistic(state, "x", Variant.A)
    assert apply_rollback(state, "x").votes["x"] is Variant.B


def test_reconcile_overwrites_and_clears_pending() -> None:
    state = apply_optimistic(VoteProjection(), "x", Variant.A)
    reconciled = apply_reconcile(state, "x", Variant.B)

    assert reconciled.votes["x"] is Variant.B
    assert "x" not in reconciled.pending
    # Nothing left to undo once the ledger has spoken.
    assert apply_rollback(reconciled, "x") is reconciled


def test_confirm_only_drops_rollback_point() -> None:
    state = apply_optimistic(VoteProjection(), "x", Variant.A)
    confirmed = apply_confirm(state, "x")

    assert confirmed.votes == state.votes
    assert "x" not in confirmed.pending
    assert apply_confirm(confirmed, "x") is confirmed


def test_transitions_leave_other_items_alone() -> None:
    start = VoteProjection.from_votes({"y": Variant.B})
    state = apply_optimistic(start, "x", Variant.A)
    state = apply_rollback(state, "x")
    assert dict(state.votes) == {"y": Variant.B}
