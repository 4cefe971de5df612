# src/anonvote/models/item.py
"""SQLAlchemy model for rateable content items."""

from sqlalchemy import CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from anonvote.db.session import Base


class ContentItem(Base):
    """A rateable item owned by the authoring store.

    The ledger only reads existence and owns the two counters.
    """

    __tablename__ = "content_item"
    __table_args__ = (
        CheckConstraint("count_a >= 0", name="ck_content_item_count_a"),
        CheckConstraint("count_b >= 0", name="ck_content_item_count_b"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Incremented atomically with vote-row creation, never decremented.
    count_a: Mapped[int] = mapped_column(default=0, nullable=False)
    count_b: Mapped[int] = mapped_column(default=0, nullable=False)

    @property
    def total(self) -> int:
        """Return the number of votes cast on this item."""
        return self.count_a + self.count_b
