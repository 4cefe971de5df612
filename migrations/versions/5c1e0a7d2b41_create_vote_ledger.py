"""create vote ledger

Revision ID: 5c1e0a7d2b41
Revises:
Create Date: 2026-10-18 09:12:40.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e0a7d2b41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create content items and the one-vote-per-visitor table."""
    op.create_table(
        "content_item",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("count_a", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("count_b", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("count_a >= 0", name="ck_content_item_count_a"),
        sa.CheckConstraint("count_b >= 0", name="ck_content_item_count_b"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "vote",
        sa.Column("visitor_id", sa.String(length=128), nullable=False),
        sa.Column("item_id", sa.String(length=64), nullable=False),
        sa.Column("variant", sa.String(length=1), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("variant IN ('A', 'B')", name="ck_vote_variant"),
        sa.ForeignKeyConstraint(["item_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("visitor_id", "item_id"),
    )
    op.create_index("ix_vote_item_id", "vote", ["item_id"])


def downgrade() -> None:
    """Drop the ledger tables."""
    op.drop_index("ix_vote_item_id", table_name="vote")
    op.drop_table("vote")
    op.drop_table("content_item")
