# tests/services/test_ledger_concurrency.py
"""Racing casts for the same (visitor, item) key against a file-backed database."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from anonvote.db.session import Base
from anonvote.models import ContentItem, Vote
from anonvote.services.key_lock import LocalKeyLock
from anonvote.services.ledger import VoteLedger

RACERS = 8


@pytest.fixture()
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    with Session(engine) as db:
        db.add(ContentItem(id="item-x"))
        db.commit()
    try:
        yield engine
    finally:
        engine.dispose()


def test_concurrent_casts_store_exactly_one_vote(file_engine) -> None:
    lock = LocalKeyLock(timeout_seconds=30)
    ledger = VoteLedger(key_lock=lock)
    barrier = threading.Barrier(RACERS)

    def cast(index: int):
        barrier.wait()
        with Session(file_engine) as db:
            return ledger.cast_vote(db, "visitor-1", "item-x", "A" if index % 2 else "B")

    with ThreadPoolExecutor(max_workers=RACERS) as pool:
        outcomes = list(pool.map(cast, range(RACERS)))

    fresh = [o for o in outcomes if not o.already_voted]
    assert len(fresh) == 1
    assert {o.variant for o in outcomes} == {fresh[0].variant}

    with Session(file_engine) as db:
        assert db.scalar(select(func.count()).select_from(Vote)) == 1
        item = db.get(ContentItem, "item-x")
        assert item.count_a + item.count_b == 1
    assert lock.active_keys() == 0


def test_concurrent_casts_by_different_visitors_all_count(file_engine) -> None:
    ledger = VoteLedger(key_lock=LocalKeyLock(timeout_seconds=30))
    # Distinct keys never share a key lock; SQLite still allows one writer at a time.
    writer = threading.Lock()
    barrier = threading.Barrier(RACERS)

    def cast(index: int):
        barrier.wait()
        with writer, Session(file_engine) as db:
            return ledger.cast_vote(db, f"visitor-{index}", "item-x", "A")

    with ThreadPoolExecutor(max_workers=RACERS) as pool:
        outcomes = list(pool.map(cast, range(RACERS)))

    assert not any(o.already_voted for o in outcomes)
    with Session(file_engine) as db:
        assert db.get(ContentItem, "item-x").count_a == RACERS
