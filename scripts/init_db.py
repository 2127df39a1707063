"""Create the offline store tables for the active APP_ENV.

Run from a checkout: ``python scripts/init_db.py``. Safe to repeat; the
schema only uses CREATE TABLE IF NOT EXISTS.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config import get_settings_module  # noqa: E402
from src.onpoint_sync.onpoint_sync.database.bootstrap import apply_schema, list_tables  # noqa: E402

logger = logging.getLogger("onpoint_sync.init_db")


def _describe(db: dict) -> str:
    return "{user}@{host}:{port}/{database}".format(
        user=db.get("user"), host=db.get("host"), port=db.get("port", 3306), database=db.get("database")
    )


def init_offline_store(settings_module: str | None = None) -> list[str]:
    settings = importlib.import_module(settings_module or get_settings_module())
    db = dict(settings.DB_CONFIG)

    count = apply_schema(db, schema_path=ROOT / "database" / "schema.sql")
    tables = list_tables(db)
    logger.info("Applied %d schema statement(s) to %s", count, _describe(db))
    return tables


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    found = init_offline_store()
    logger.info("Tables present: %s", ", ".join(found) or "none")
