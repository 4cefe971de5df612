"""Vote ledger: the authoritative one-vote-per-(visitor, item) store.

Every write goes through `VoteLedger.cast_vote`, which inserts the vote row
and bumps exactly one item counter inside a single transaction, while holding
a lock scoped to the (visitor, item) key. The composite primary key on the
vote table backs this up for writers in other processes: a collision there is
answered as "already voted", never as an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from anonvote.core.errors import InvalidRequestError, NotFoundError, StorageError
from anonvote.core.settings import settings
from anonvote.core.types import Variant, VoteOutcome, split_percentages
from anonvote.models import ContentItem, Vote
from anonvote.services.key_lock import KeyLock, get_key_lock
from anonvote.utils.hash import visitor_fingerprint

logger = logging.getLogger(__name__)

# Share of an item's votes (percent) at or above which a side counts as a minority
# rather than a unique memory.
MINORITY_FLOOR_PERCENT = 30.0


@dataclass(frozen=True)
class VoteRecord:
    """A stored vote as seen by its visitor."""

    item_id: str
    variant: Variant
    created_at: datetime


@dataclass(frozen=True)
class VisitorStats:
    """How a visitor's choices line up with everyone else's."""

    total_votes: int
    in_majority: int
    in_minority: int
    unique_memory: int
    voted_item_ids: list[str]


@dataclass(frozen=True)
class ImportSummary:
    """Counts from pushing client-only votes to the ledger."""

    imported: int
    already_present: int
    skipped: int


class VoteLedger:
    """Service owning vote rows and item counters."""

    def __init__(self, key_lock: KeyLock | None = None) -> None:
        self._key_lock = key_lock or get_key_lock()

    # --- validation -----------------------------------------------------------------
    @staticmethod
    def _clean_visitor_id(visitor_id: object) -> str:
        if not isinstance(visitor_id, str):
            raise InvalidRequestError("Visitor id must be a string")
        cleaned = visitor_id.strip()
        if not settings.visitor_id_min_length <= len(cleaned) <= settings.visitor_id_max_length:
            raise InvalidRequestError("Visitor id has an invalid length")
        return cleaned

    @staticmethod
    def _clean_item_id(item_id: object) -> str:
        if not isinstance(item_id, str):
            raise InvalidRequestError("Item id must be a string")
        cleaned = item_id.strip()
        if not 0 < len(cleaned) <= settings.item_id_max_length:
            raise InvalidRequestError("Item id has an invalid length")
        return cleaned

    @staticmethod
    def _clean_variant(variant: object) -> Variant:
        parsed = Variant.parse(variant)
        if parsed is None:
            raise InvalidRequestError("Variant must be A or B")
        return parsed

    # --- writes ---------------------------------------------------------------------
    def cast_vote(
        self,
        db: Session,
        visitor_id: str,
        item_id: str,
        variant: Variant | str,
    ) -> VoteOutcome:
        """Record a visitor's single vote on an item.

        Args:
            db: Database session; committed on success, rolled back on failure.
            visitor_id: Self-issued anonymous visitor token.
            item_id: Identifier of an existing content item.
            variant: "A" or "B".

        Returns:
            The stored variant and fresh counters. `already_voted` is True when
            a vote for this (visitor, item) existed before the call, in which
            case the stored variant wins and counters are unchanged.

        Raises:
            InvalidRequestError: Malformed visitor id, item id or variant.
            NotFoundError: The item does not exist.
            StorageError: The store failed; the call is safe to retry.
        """
        visitor_id = self._clean_visitor_id(visitor_id)
        item_id = self._clean_item_id(item_id)
        choice = self._clean_variant(variant)
        tag = visitor_fingerprint(visitor_id)

        with self._key_lock.hold((visitor_id, item_id)):
            try:
                item = db.get(ContentItem, item_id)
                if item is None:
                    db.rollback()
                    raise NotFoundError(f"Item {item_id} not found")

                existing = db.get(Vote, (visitor_id, item_id))
                if existing is not None:
                    db.rollback()
                    logger.debug("Visitor %s already voted on %s", tag, item_id)
                    return self._existing_outcome(db, visitor_id, item_id)

                db.add(Vote(visitor_id=visitor_id, item_id=item_id, variant=choice.value))
                db.flush()
                counter = ContentItem.count_a if choice is Variant.A else ContentItem.count_b
                db.execute(
                    update(ContentItem)
                    .where(ContentItem.id == item_id)
                    .values({counter: counter + 1})
                    .execution_options(synchronize_session=False)
                )
                db.commit()
            except IntegrityError:
                # A writer outside this process inserted the same key first.
                db.rollback()
                logger.info("Vote race on %s for visitor %s resolved to stored row", item_id, tag)
                return self._existing_outcome(db, visitor_id, item_id)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Ledger write failed for item %s: %s", item_id, exc)
                raise StorageError("Vote ledger unavailable") from exc

            try:
                db.refresh(item)
            except SQLAlchemyError as exc:
                raise StorageError("Vote ledger unavailable") from exc

        logger.info("Recorded vote %s on %s for visitor %s", choice.value, item_id, tag)
        return VoteOutcome(
            item_id=item_id,
            variant=choice,
            count_a=item.count_a,
            count_b=item.count_b,
            already_voted=False,
        )

    def _existing_outcome(self, db: Session, visitor_id: str, item_id: str) -> VoteOutcome:
        try:
            stored = db.get(Vote, (visitor_id, item_id))
            item = db.get(ContentItem, item_id)
        except SQLAlchemyError as exc:
            raise StorageError("Vote ledger unavailable") from exc
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        if stored is None:
            # Only reachable if the racing transaction was itself rolled back.
            raise StorageError("Vote state changed during the request; retry")
        return VoteOutcome(
            item_id=item_id,
            variant=Variant(stored.variant),
            count_a=item.count_a,
            count_b=item.count_b,
            already_voted=True,
        )

    def import_votes(
        self,
        db: Session,
        visitor_id: str,
        votes: Mapping[str, Variant | str],
    ) -> ImportSummary:
        """Push votes a client holds locally but the ledger may not have.

        Each entry goes through `cast_vote`, so existing rows are left alone.
        Unknown items and malformed entries are skipped rather than raised.
        """
        visitor_id = self._clean_visitor_id(visitor_id)
        imported = already_present = skipped = 0
        for item_id, variant in votes.items():
            try:
                outcome = self.cast_vote(db, visitor_id, item_id, variant)
            except (InvalidRequestError, NotFoundError):
                skipped += 1
                continue
            if outcome.already_voted:
                already_present += 1
            else:
                imported += 1

        logger.info(
            "Imported %d votes for visitor %s (%d present, %d skipped)",
            imported,
            visitor_fingerprint(visitor_id),
            already_present,
            skipped,
        )
        return ImportSummary(imported=imported, already_present=already_present, skipped=skipped)

    def recalculate_counters(self, db: Session, item_ids: Iterable[str] | None = None) -> int:
        """Rebuild item counters from vote rows.

        Offline repair only; the voting path never recomputes counters.
        Returns the number of items updated.
        """
        try:
            stmt = select(ContentItem)
            if item_ids is not None:
                stmt = stmt.where(ContentItem.id.in_(list(item_ids)))
            items = list(db.scalars(stmt))

            tallies: dict[tuple[str, str], int] = {
                (row.item_id, row.variant): row.n
                for row in db.execute(
                    select(Vote.item_id, Vote.variant, func.count().label("n"))
                    .group_by(Vote.item_id, Vote.variant)
                )
            }
            for item in items:
                item.count_a = tallies.get((item.id, Variant.A.value), 0)
                item.count_b = tallies.get((item.id, Variant.B.value), 0)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise StorageError("Vote ledger unavailable") from exc

        logger.info("Recalculated counters for %d items", len(items))
        return len(items)

    # --- reads ----------------------------------------------------------------------
    def get_vote(self, db: Session, visitor_id: str, item_id: str) -> Variant | None:
        """Return the visitor's stored variant for an item, or None.

        Reads the primary store written by `cast_vote`.
        """
        visitor_id = self._clean_visitor_id(visitor_id)
        item_id = self._clean_item_id(item_id)
        try:
            variant = db.scalar(
                select(Vote.variant).where(
                    Vote.visitor_id == visitor_id,
                    Vote.item_id == item_id,
                )
            )
        except SQLAlchemyError as exc:
            raise StorageError("Vote ledger unavailable") from exc
        return Variant(variant) if variant is not None else None

    def list_votes(self, db: Session, visitor_id: str) -> list[VoteRecord]:
        """Return all of a visitor's votes, newest first."""
        visitor_id = self._clean_visitor_id(visitor_id)
        try:
            rows = db.scalars(
                select(Vote)
                .where(Vote.visitor_id == visitor_id)
                .order_by(Vote.created_at.desc(), Vote.item_id)
            ).all()
        except SQLAlchemyError as exc:
            raise StorageError("Vote ledger unavailable") from exc
        return [
            VoteRecord(item_id=row.item_id, variant=Variant(row.variant), created_at=row.created_at)
            for row in rows
        ]

    def vote_count(self, db: Session, visitor_id: str) -> int:
        """Return how many distinct items the visitor has voted on."""
        visitor_id = self._clean_visitor_id(visitor_id)
        try:
            return db.scalar(
                select(func.count()).select_from(Vote).where(Vote.visitor_id == visitor_id)
            ) or 0
        except SQLAlchemyError as exc:
            raise StorageError("Vote ledger unavailable") from exc

    def visitor_stats(self, db: Session, visitor_id: str) -> VisitorStats:
        """Classify each of the visitor's votes against the item's current split."""
        visitor_id = self._clean_visitor_id(visitor_id)
        try:
            rows = db.execute(
                select(Vote.item_id, Vote.variant, ContentItem.count_a, ContentItem.count_b)
                .join(ContentItem, ContentItem.id == Vote.item_id)
                .where(Vote.visitor_id == visitor_id)
            ).all()
        except SQLAlchemyError as exc:
            raise StorageError("Vote ledger unavailable") from exc

        in_majority = in_minority = unique_memory = 0
        for row in rows:
            if row.count_a + row.count_b == 0:
                continue
            percent_a, percent_b = split_percentages(row.count_a, row.count_b)
            share = percent_a if row.variant == Variant.A.value else percent_b
            if share > 50:
                in_majority += 1
            elif share >= MINORITY_FLOOR_PERCENT:
                in_minority += 1
            else:
                unique_memory += 1

        return VisitorStats(
            total_votes=len(rows),
            in_majority=in_majority,
            in_minority=in_minority,
            unique_memory=unique_memory,
            voted_item_ids=[row.item_id for row in rows],
        )

    def item_counters(self, db: Session, item_id: str) -> ContentItem:
        """Return the item with its counters, raising NotFoundError if missing."""
        item_id = self._clean_item_id(item_id)
        try:
            item = db.get(ContentItem, item_id)
        except SQLAlchemyError as exc:
            raise StorageError("Vote ledger unavailable") from exc
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item


def get_vote_ledger() -> VoteLedger:
    """Return a vote ledger bound to the process-wide key lock."""
    return VoteLedger()
