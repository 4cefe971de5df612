"""Client half of anonvote: the local vote cache and everything built on it.

The storage, bus, cache and session are process-lifetime state. Build them
once with `get_default_session()` (first access loads the vote table from
the profile file) and pass the session into UI code rather than reaching for
it globally.
"""

from __future__ import annotations

from anonvote.client.bus import CacheEvent, CoalescingSubscriber, SyncBus
from anonvote.client.cache import LocalVoteCache
from anonvote.client.identity import VisitorIdentityProvider
from anonvote.client.session import SyncReport, VoteSession
from anonvote.client.storage import ProfileStorage
from anonvote.client.transport import LedgerTransport
from anonvote.client.unlock import Mode, ModeSwitch, UnlockState, Visibility

__all__ = [
    "CacheEvent",
    "CoalescingSubscriber",
    "LedgerTransport",
    "LocalVoteCache",
    "Mode",
    "ModeSwitch",
    "ProfileStorage",
    "SyncBus",
    "SyncReport",
    "UnlockState",
    "Visibility",
    "VisitorIdentityProvider",
    "VoteSession",
    "build_session",
    "get_default_session",
]


def build_session(
    storage: ProfileStorage | None = None,
    transport: LedgerTransport | None = None,
) -> VoteSession:
    """Wire a fresh session from settings, overriding storage or transport if given."""
    storage = storage or ProfileStorage()
    cache = LocalVoteCache(storage, SyncBus())
    return VoteSession(
        cache=cache,
        identity=VisitorIdentityProvider(storage),
        transport=transport or LedgerTransport(),
    )


class _SessionSingleton:
    """Singleton wrapper for the process-wide VoteSession."""

    _instance: VoteSession | None = None

    @classmethod
    def get_instance(cls) -> VoteSession:
        """Get or create the process-wide session."""
        if cls._instance is None:
            cls._instance = build_session()
        return cls._instance


def get_default_session() -> VoteSession:
    """Return the process-wide vote session."""
    return _SessionSingleton.get_instance()
