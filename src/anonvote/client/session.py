"""Client-facing voting facade.

`VoteSession` ties together the visitor identity, the local vote cache, the
bus, the unlock state machine and the ledger transport. A vote is applied to
the cache synchronously and the ledger call runs as a separate task whose
outcome always reconciles or rolls back the cache, whether or not the UI
surface that started it is still around.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from anonvote.client.bus import EVENT_MODE, CacheEvent, SyncBus
from anonvote.client.cache import LocalVoteCache
from anonvote.client.identity import VisitorIdentityProvider
from anonvote.client.transport import LedgerTransport
from anonvote.client.unlock import (
    Mode,
    ModeSwitch,
    UnlockState,
    Visibility,
    stage_for,
    visibility_for,
)
from anonvote.core.errors import AnonVoteError, InvalidRequestError
from anonvote.core.types import Variant, VoteOutcome

logger = logging.getLogger(__name__)

VOTE_FAILED_NOTICE = "Your vote could not be saved. Please try again."

Notifier = Callable[[str], None]


def _log_notice(message: str) -> None:
    logger.warning("Notice: %s", message)


@dataclass(frozen=True)
class SyncReport:
    """What a full reconciliation with the ledger changed."""

    imported: int
    hydrated: int
    server_votes: int


class VoteSession:
    """Voting, vote lookup and content visibility for one visitor profile."""

    def __init__(
        self,
        *,
        cache: LocalVoteCache,
        identity: VisitorIdentityProvider,
        transport: LedgerTransport,
        mode_switch: ModeSwitch | None = None,
        stage_thresholds: Sequence[int] | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self._cache = cache
        self._bus = cache.bus
        self._identity = identity
        self._transport = transport
        self._mode_switch = mode_switch or ModeSwitch()
        self._thresholds = tuple(stage_thresholds) if stage_thresholds is not None else None
        self._notify = notify or _log_notice
        self._inflight: set[asyncio.Task[VoteOutcome | None]] = set()
        self._counters: dict[str, VoteOutcome] = {}
        self._bus.subscribe(self._on_cache_event)

    @property
    def bus(self) -> SyncBus:
        return self._bus

    # --- voting ---------------------------------------------------------------------
    def vote(self, item_id: str, variant: Variant | str) -> asyncio.Task[VoteOutcome | None]:
        """Cast a vote: update the cache now, confirm with the ledger later.

        Must be called from a running event loop. The returned task resolves to
        the ledger's outcome, or None if the vote failed and was rolled back.

        Raises:
            InvalidRequestError: The variant is not A or B.
        """
        choice = Variant.parse(variant)
        if choice is None:
            raise InvalidRequestError("Variant must be A or B")
        loop = asyncio.get_running_loop()

        self._cache.set_optimistic(item_id, choice)

        task = loop.create_task(self._submit(item_id, choice))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _submit(self, item_id: str, variant: Variant) -> VoteOutcome | None:
        try:
            outcome = await self._transport.cast_vote(
                self._identity.current_visitor_id(),
                item_id,
                variant,
            )
        except AnonVoteError as exc:
            logger.warning("Vote on %s failed (%s); rolling back", item_id, type(exc).__name__)
            self._cache.rollback(item_id)
            self._notify(VOTE_FAILED_NOTICE)
            return None
        except asyncio.CancelledError:
            # The ledger may or may not have the vote; sync_with_ledger settles it.
            logger.info("Vote on %s cancelled before the ledger answered; rolling back", item_id)
            self._cache.rollback(item_id)
            raise
        except Exception:
            self._cache.rollback(item_id)
            self._notify(VOTE_FAILED_NOTICE)
            raise

        self._apply_outcome(outcome)
        return outcome

    def _apply_outcome(self, outcome: VoteOutcome) -> None:
        self._counters[outcome.item_id] = outcome
        if self._cache.get(outcome.item_id) != outcome.variant:
            if outcome.already_voted:
                logger.info("Ledger holds a different vote on %s; reconciling", outcome.item_id)
            self._cache.reconcile(outcome.item_id, outcome.variant)
        else:
            self._cache.confirm(outcome.item_id)

    async def wait_for_pending(self) -> None:
        """Wait for every in-flight vote to settle."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def counters(self, item_id: str) -> VoteOutcome | None:
        """Return the last ledger-confirmed counters seen for an item."""
        return self._counters.get(item_id)

    # --- reads ----------------------------------------------------------------------
    def has_voted(self, item_id: str) -> bool:
        return self._cache.get(item_id) is not None

    def my_variant(self, item_id: str) -> Variant | None:
        return self._cache.get(item_id)

    def distinct_vote_count(self) -> int:
        return self._cache.count()

    def stage(self) -> int:
        return stage_for(self.distinct_vote_count(), self._thresholds)

    def unlock_state(self) -> UnlockState:
        return UnlockState(stage=self.stage(), mode=self._mode_switch.mode)

    def visibility_state(self, item_id: str) -> Visibility:
        return visibility_for(self._mode_switch.mode, self.has_voted(item_id))

    def next_unvoted(self, item_ids: Iterable[str], exclude: Iterable[str] = ()) -> str | None:
        """Return the first item without a cached vote, skipping `exclude`."""
        skipped = set(exclude)
        voted = self._cache.get_all()
        for item_id in item_ids:
            if item_id not in voted and item_id not in skipped:
                return item_id
        return None

    # --- mode -----------------------------------------------------------------------
    @property
    def mode(self) -> Mode:
        return self._mode_switch.mode

    def set_mode(self, mode: Mode | str) -> Mode:
        """Switch mode, raising ModeLockedError when gated by stage."""
        if self._mode_switch.set(mode, self.stage()):
            self._bus.publish(EVENT_MODE)
        return self._mode_switch.mode

    def toggle_mode(self) -> Mode:
        """Flip between Normal and Alternate mode."""
        self._mode_switch.toggle(self.stage())
        self._bus.publish(EVENT_MODE)
        return self._mode_switch.mode

    def _on_cache_event(self, event: CacheEvent) -> None:
        if event.kind == EVENT_MODE:
            return
        if self._mode_switch.enforce(self.stage()):
            self._bus.publish(EVENT_MODE)

    # --- bus ------------------------------------------------------------------------
    def subscribe(self, callback: Callable[[CacheEvent], None]) -> Callable[[], None]:
        return self._bus.subscribe(callback)

    def unsubscribe(self, callback: Callable[[CacheEvent], None]) -> None:
        self._bus.unsubscribe(callback)

    # --- ledger reconciliation ------------------------------------------------------
    async def ensure_hydrated(self, item_id: str) -> Variant | None:
        """Fill the cache for an item from the ledger if nothing is cached.

        Used when an item loads on a device that has never seen the vote.
        """
        cached = self._cache.get(item_id)
        if cached is not None:
            return cached
        stored = await self._transport.get_vote(self._identity.current_visitor_id(), item_id)
        if stored is not None:
            self._cache.hydrate(item_id, stored)
        return stored

    async def sync_with_ledger(self) -> SyncReport:
        """Bring the local table and the ledger into agreement.

        Votes only the client knows about are pushed to the ledger; votes only
        the ledger knows about are added to the cache. Entries both sides
        hold are left alone here; per-item disagreements are settled by the
        next vote on that item.
        """
        visitor_id = self._identity.current_visitor_id()
        server_votes = await self._transport.list_votes(visitor_id)

        local_only = {
            item_id: variant
            for item_id, variant in self._cache.get_all().items()
            if item_id not in server_votes and not self._cache.is_pending(item_id)
        }
        imported = 0
        if local_only:
            summary = await self._transport.import_votes(visitor_id, local_only)
            imported = summary["imported"]
            if imported or summary["already_present"]:
                server_votes = await self._transport.list_votes(visitor_id)

        hydrated = 0
        for item_id, variant in server_votes.items():
            if self._cache.hydrate(item_id, variant):
                hydrated += 1

        logger.info(
            "Synced with ledger: %d imported, %d hydrated, %d on server",
            imported,
            hydrated,
            len(server_votes),
        )
        return SyncReport(imported=imported, hydrated=hydrated, server_votes=len(server_votes))

    async def close(self) -> None:
        """Settle in-flight votes and release the transport."""
        await self.wait_for_pending()
        await self._transport.close()
