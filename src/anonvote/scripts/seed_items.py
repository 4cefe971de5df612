"""Load content item ids into the ledger for local development.

The authoring store normally owns items; this only registers ids so votes
have something to point at.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from anonvote.db.session import SessionLocal, create_tables
from anonvote.models import ContentItem


def seed_items(entries: list[dict[str, str]]) -> int:
    """Insert items that are not already present. Returns the number added."""
    added = 0
    with SessionLocal() as db:
        for entry in entries:
            item_id = str(entry["id"]).strip()
            if not item_id or db.get(ContentItem, item_id) is not None:
                continue
            db.add(ContentItem(id=item_id, title=entry.get("title")))
            added += 1
        db.commit()
    return added


def main() -> None:
    parser = argparse.ArgumentParser(description="Register content items in the vote ledger")
    parser.add_argument("path", type=Path, help='JSON list of {"id": ..., "title": ...} objects')
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create ledger tables before seeding (skip when using Alembic).",
    )
    args = parser.parse_args()

    try:
        entries = json.loads(args.path.read_text(encoding="utf-8"))
        if args.create_tables:
            create_tables()
        added = seed_items(entries)
    except (OSError, ValueError, KeyError, SQLAlchemyError) as exc:
        print(f"[seed_items] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"[seed_items] added {added} of {len(entries)} items")


if __name__ == "__main__":
    main()
