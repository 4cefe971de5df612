# src/anonvote/scripts/migrate.py
from __future__ import annotations
import os
from alembic import command
from alembic.config import Config

from anonvote.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def run_upgrade_head() -> None:
    cfg = Config(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    command.upgrade(cfg, "head")


def main() -> None:
    run_upgrade_head()
    print("[migrate] database is at head")


if __name__ == "__main__":
    main()
