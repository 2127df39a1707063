from __future__ import annotations

import uuid

from ..core.constants import PROVISIONAL_ID_PREFIX


def new_provisional_id() -> str:
    """Local-only id for records the server has not confirmed yet."""
    return f"{PROVISIONAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_provisional(record_id: str | None) -> bool:
    return bool(record_id) and str(record_id).startswith(PROVISIONAL_ID_PREFIX)


def new_local_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"
