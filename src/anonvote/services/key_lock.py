"""Per-key mutual exclusion for the ledger's insert+increment step.

Concurrent casts for the same (visitor, item) pair serialize on one lock;
casts for different pairs never contend with each other here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from threading import Lock
from typing import Protocol

import redis
from redis.exceptions import LockError, RedisError

from anonvote.core.errors import StorageError
from anonvote.core.settings import settings
from anonvote.utils.hash import blake3_hexdigest

logger = logging.getLogger(__name__)


class KeyLock(Protocol):
    """Context-manager factory that holds a lock scoped to one key."""

    def hold(self, key: tuple[str, str]) -> AbstractContextManager[None]: ...


class LocalKeyLock:
    """In-process keyed locks with reference counting.

    Entries are created on first use and dropped once no caller holds or
    waits on them, so the registry never grows with the number of keys seen.
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._timeout = (
            settings.ledger_lock_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._registry_lock = Lock()
        self._entries: dict[tuple[str, str], list] = {}

    @contextmanager
    def hold(self, key: tuple[str, str]) -> Iterator[None]:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = [Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1

        lock: Lock = entry[0]
        try:
            if not lock.acquire(timeout=self._timeout):
                raise StorageError("Timed out waiting for the vote lock")
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._registry_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    self._entries.pop(key, None)

    def active_keys(self) -> int:
        """Return how many keys currently have a holder or waiter."""
        with self._registry_lock:
            return len(self._entries)


class RedisKeyLock:
    """Keyed locks shared across worker processes through Redis."""

    def __init__(self, client: redis.Redis | None = None, timeout_seconds: float | None = None) -> None:
        self._redis = client or redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
        self._timeout = (
            settings.ledger_lock_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    @staticmethod
    def _lock_name(key: tuple[str, str]) -> str:
        visitor_id, item_id = key
        digest = blake3_hexdigest(f"{visitor_id}\x1f{item_id}".encode())
        return f"votelock:{digest}"

    @contextmanager
    def hold(self, key: tuple[str, str]) -> Iterator[None]:
        lock = self._redis.lock(
            self._lock_name(key),
            timeout=self._timeout,
            blocking_timeout=self._timeout,
        )
        try:
            acquired = lock.acquire()
        except RedisError as exc:
            raise StorageError(f"Vote lock unavailable: {exc}") from exc
        if not acquired:
            raise StorageError("Timed out waiting for the vote lock")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Lock expired while held; the unique key still guards the row.
                logger.warning("Vote lock %s expired before release", self._lock_name(key))


class _KeyLockSingleton:
    """Singleton wrapper for the configured key lock backend."""

    _instance: LocalKeyLock | RedisKeyLock | None = None

    @classmethod
    def get_instance(cls) -> LocalKeyLock | RedisKeyLock:
        """Get or create the key lock matching `LEDGER_LOCK_BACKEND`."""
        if cls._instance is None:
            if settings.ledger_lock_backend == "redis":
                cls._instance = RedisKeyLock()
            else:
                cls._instance = LocalKeyLock()
        return cls._instance


def get_key_lock() -> LocalKeyLock | RedisKeyLock:
    """Return the process-wide key lock."""
    return _KeyLockSingleton.get_instance()
