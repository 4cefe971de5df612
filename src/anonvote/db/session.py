"""Engine and session factory for the vote ledger database."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from anonvote.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for ledger tables."""


# Register the ledger models on Base.metadata before anything calls create_all.
import anonvote.models  # noqa: E402,F401


def _build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, echo=settings.sql_debug)

    sqlite_engine = create_engine(
        url,
        echo=settings.sql_debug,
        # Endpoints run in the threadpool; a connection may move between threads.
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _build_engine(settings.effective_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; the ledger commits or rolls back itself."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create ledger tables directly, bypassing Alembic (local development only)."""
    Base.metadata.create_all(bind=engine)
