"""Error taxonomy shared by the ledger service and the client."""

from __future__ import annotations


class AnonVoteError(RuntimeError):
    """Base exception for ledger and client failures."""

    retryable: bool = False


class InvalidRequestError(AnonVoteError):
    """Raised when input is malformed. Resubmitting the same input will fail again."""


class NotFoundError(AnonVoteError):
    """Raised when the referenced content item does not exist."""


class StorageError(AnonVoteError):
    """Raised when the ledger store is unavailable.

    Voting is idempotent, so the caller may retry the same request.
    """

    retryable = True


class ModeLockedError(AnonVoteError):
    """Raised when the mode toggle is gated and the visitor's stage is too low."""
