# src/anonvote/services/__init__.py
"""Business logic services for the anonvote ledger."""

from .key_lock import LocalKeyLock, RedisKeyLock, get_key_lock
from .ledger import VoteLedger, VoteOutcome, get_vote_ledger

__all__ = [
    "LocalKeyLock",
    "RedisKeyLock",
    "VoteLedger",
    "VoteOutcome",
    "get_key_lock",
    "get_vote_ledger",
]
