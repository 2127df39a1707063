from __future__ import annotations

import logging
from typing import Sequence

from ..common.datetime_utils import now_local
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, from_json, to_json
from ..remote.adapters import adjustment_from_wire, adjustment_to_wire
from .model import AdjustmentRequest
from .repository import AdjustmentStagingStore

logger = logging.getLogger(__name__)


class MySQLAdjustmentStagingStore(AdjustmentStagingStore):
    """One JSON document (wire shape) per tenant/user."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def load(self, tenant_id: str, user_id: str) -> Sequence[AdjustmentRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT payload FROM adjustment_staging WHERE tenant_id=%s AND user_id=%s",
                (tenant_id, user_id),
            )
            row = fetchone(cur)
        if not row:
            return []
        return [adjustment_from_wire(item) for item in from_json(row["payload"]) or []]

    def save_all(self, tenant_id: str, user_id: str, requests: Sequence[AdjustmentRequest]) -> None:
        payload = to_json([adjustment_to_wire(r) for r in requests])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO adjustment_staging (tenant_id, user_id, payload, updated_at)
                VALUES (%s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE payload=VALUES(payload), updated_at=VALUES(updated_at)
                """,
                (tenant_id, user_id, payload, now_local()),
            )
        logger.debug("Staged %d adjustment request(s) for user %s", len(requests), user_id)

    def clear(self, tenant_id: str, user_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM adjustment_staging WHERE tenant_id=%s AND user_id=%s",
                (tenant_id, user_id),
            )
