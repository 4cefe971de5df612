# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("LEDGER_LOCK_BACKEND", "local")

from anonvote.client.bus import SyncBus
from anonvote.client.cache import LocalVoteCache
from anonvote.client.storage import ProfileStorage
from anonvote.db.session import Base
from anonvote.db.session import get_db as app_get_session
from anonvote.main import app as fastapi_app
from anonvote.models import ContentItem
from anonvote.services.key_lock import LocalKeyLock
from anonvote.services.ledger import VoteLedger

TEST_DB_URL = "sqlite://"

VISITOR_ID = "3f2b7c1e-0a4d-4e55-9b61-2f8d0c7a9e10"
OTHER_VISITOR_ID = "9a0e4d52-6c3b-4f1a-8e27-b5d1c0f3a6e4"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

        # The ledger commits, so clear every table for the next test.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def visitor_headers() -> dict[str, str]:
    """Return the visitor header for the primary test visitor."""
    return {"X-Visitor-Id": VISITOR_ID}


@pytest.fixture()
def other_visitor_headers() -> dict[str, str]:
    """Return the visitor header for a second visitor."""
    return {"X-Visitor-Id": OTHER_VISITOR_ID}


@pytest.fixture()
def make_item(db_session: Session) -> Callable[..., ContentItem]:
    """Return a factory that persists content items."""

    def _make_item(item_id: str, title: str | None = None, count_a: int = 0, count_b: int = 0) -> ContentItem:
        item = ContentItem(id=item_id, title=title, count_a=count_a, count_b=count_b)
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make_item


@pytest.fixture()
def item(make_item: Callable[..., ContentItem]) -> ContentItem:
    """Create a baseline content item."""
    return make_item("item-x", title="Item X")


@pytest.fixture()
def ledger() -> VoteLedger:
    """Return a ledger with its own in-process key lock."""
    return VoteLedger(key_lock=LocalKeyLock(timeout_seconds=5.0))


@pytest.fixture()
def profile_storage(tmp_path: Path) -> ProfileStorage:
    """Return client storage backed by a throwaway profile file."""
    return ProfileStorage(path=tmp_path / "profile.json", namespace="anonvote")


@pytest.fixture()
def bus() -> SyncBus:
    return SyncBus()


@pytest.fixture()
def cache(profile_storage: ProfileStorage, bus: SyncBus) -> LocalVoteCache:
    return LocalVoteCache(profile_storage, bus)
