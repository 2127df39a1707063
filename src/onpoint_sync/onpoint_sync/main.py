from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, list_tables

from .container import Container, build_container
from .adjustments.controller import register as register_adjustments
from .expenses.controller import register as register_expenses
from .leave.controller import register as register_leave
from .sync.controller import register as register_sync
from .timeclock.controller import register as register_timeclock

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["START_SYNC_POLLING"] = not app.config["TESTING"]

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Local store ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            api_base_url=getattr(settings, "API_BASE_URL"),
            api_timeout_seconds=float(getattr(settings, "API_TIMEOUT_SECONDS", 10)),
            cache_max_age_hours=float(getattr(settings, "CACHE_MAX_AGE_HOURS", 24)),
            max_queue_retries=int(getattr(settings, "MAX_QUEUE_RETRIES", 5)),
            required_daily_minutes=int(getattr(settings, "REQUIRED_DAILY_MINUTES", 480)),
            geolocation_timeout_seconds=float(getattr(settings, "GEOLOCATION_TIMEOUT_SECONDS", 5)),
            poll_interval_seconds=float(getattr(settings, "POLL_INTERVAL_SECONDS", 30)),
        )

    app.extensions["onpoint_container"] = container

    register_sync(app, container)
    register_timeclock(app, container)
    register_adjustments(app, container)
    register_leave(app, container)
    register_expenses(app, container)

    return app
