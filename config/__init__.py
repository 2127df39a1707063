"""Environment selection for the sync service.

``APP_ENV`` names the settings module to load; unknown values run with the
development settings so a bare checkout starts against a local database.
"""

from __future__ import annotations

import os

SETTINGS_BY_ENV = {
    "development": "config.development",
    "dev": "config.development",
    "testing": "config.testing",
    "test": "config.testing",
    "production": "config.production",
    "prod": "config.production",
}


def get_settings_module(env: str | None = None) -> str:
    name = (env if env is not None else os.getenv("APP_ENV", "")).strip().lower()
    return SETTINGS_BY_ENV.get(name, SETTINGS_BY_ENV["development"])
