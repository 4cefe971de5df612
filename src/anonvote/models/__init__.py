# src/anonvote/models/__init__.py
"""SQLAlchemy models for the anonvote ledger."""

from .item import ContentItem
from .vote import Vote

__all__ = [
    "ContentItem",
    "Vote",
]
