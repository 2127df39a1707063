"""Settings shared by every environment module."""

import os


def db_config_from_env(*, default_password: str = "", default_database: str = "onpoint_offline") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", default_database),
    }


# Remote HR API (system of record)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3000")
API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "10"))

# Sync behaviour
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "30"))
CACHE_MAX_AGE_HOURS = float(os.getenv("CACHE_MAX_AGE_HOURS", "24"))
MAX_QUEUE_RETRIES = int(os.getenv("MAX_QUEUE_RETRIES", "5"))

# Work rules
REQUIRED_DAILY_MINUTES = int(os.getenv("REQUIRED_DAILY_MINUTES", "480"))
GEOLOCATION_TIMEOUT_SECONDS = float(os.getenv("GEOLOCATION_TIMEOUT_SECONDS", "5"))
