# src/anonvote/models/vote.py
"""Models capturing anonymous votes on content items."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from anonvote.db.session import Base
from anonvote.db.time import utcnow


class Vote(Base):
    """One visitor's choice on one item.

    Rows are written once and never updated or deleted by normal operation.
    """

    __tablename__ = "vote"
    __table_args__ = (
        CheckConstraint("variant IN ('A', 'B')", name="ck_vote_variant"),
        Index("ix_vote_item_id", "item_id"),
    )

    visitor_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    item_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("content_item.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # Composite primary key prevents duplicate votes from the same visitor.

    variant: Mapped[str] = mapped_column(String(1), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
