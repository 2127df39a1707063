from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_CACHE_MAX_AGE_HOURS
from ..core.enums import LeaveType, PunchType, QueueStatus, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from ..expenses.model import ExpenseRequest
from ..leave.model import LeaveRequest
from ..timeclock.model import TimeEntry
from .model import QueuedRequest, UnsyncedCount
from .repository import OfflineStorage, cache_key

logger = logging.getLogger(__name__)


class MySQLOfflineStorage(OfflineStorage):
    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        cache_max_age: timedelta = timedelta(hours=DEFAULT_CACHE_MAX_AGE_HOURS),
        clock: Callable[[], datetime] = now_local,
    ):
        self._conn_factory = conn_factory
        self._cache_max_age = cache_max_age
        self._clock = clock

    # ===== Time punches =====

    def save_time_punch(self, punch: TimeEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO time_punches
                    (id, tenant_id, user_id, type, timestamp, location, photo_url, synced, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    tenant_id=VALUES(tenant_id), user_id=VALUES(user_id), type=VALUES(type),
                    timestamp=VALUES(timestamp), location=VALUES(location),
                    photo_url=VALUES(photo_url), synced=VALUES(synced)
                """,
                (
                    punch.id,
                    punch.tenant_id,
                    punch.user_id,
                    punch.type.value,
                    punch.timestamp,
                    punch.location,
                    punch.photo_url,
                    int(punch.synced),
                    punch.created_at or self._clock(),
                ),
            )
        logger.debug("Time punch saved: %s synced=%s", punch.id, punch.synced)

    def get_time_punches(self, tenant_id: str, user_id: str) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, tenant_id, user_id, type, timestamp, location, photo_url, synced, created_at
                FROM time_punches
                WHERE tenant_id=%s AND user_id=%s
                ORDER BY seq
                """,
                (tenant_id, user_id),
            )
            return [self._to_time_entry(r) for r in fetchall(cur)]

    def get_unsynced_time_punches(self, tenant_id: str) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, tenant_id, user_id, type, timestamp, location, photo_url, synced, created_at
                FROM time_punches
                WHERE tenant_id=%s AND synced=0
                ORDER BY seq
                """,
                (tenant_id,),
            )
            return [self._to_time_entry(r) for r in fetchall(cur)]

    def mark_time_punch_synced(self, punch_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE time_punches SET synced=1 WHERE id=%s", (punch_id,))

    def delete_time_punch(self, punch_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM time_punches WHERE id=%s", (punch_id,))

    def clear_time_punches(self, tenant_id: str, user_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM time_punches WHERE tenant_id=%s AND user_id=%s", (tenant_id, user_id))
            removed = int(cur.rowcount or 0)
        logger.info("Cleared %d time punches for user %s in tenant %s", removed, user_id, tenant_id)
        return removed

    @staticmethod
    def _to_time_entry(r: dict) -> TimeEntry:
        return TimeEntry(
            id=str(r["id"]),
            tenant_id=str(r["tenant_id"]),
            user_id=str(r["user_id"]),
            type=PunchType(r["type"]),
            timestamp=r["timestamp"],
            location=r.get("location"),
            photo_url=r.get("photo_url"),
            synced=bool(r.get("synced")),
            created_at=r.get("created_at"),
        )

    # ===== Leave requests =====

    def save_leave_request(self, request: LeaveRequest) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests
                    (id, tenant_id, user_id, employee_name, leave_type, start_date, end_date,
                     reason, status, synced, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    employee_name=VALUES(employee_name), leave_type=VALUES(leave_type),
                    start_date=VALUES(start_date), end_date=VALUES(end_date),
                    reason=VALUES(reason), status=VALUES(status), synced=VALUES(synced)
                """,
                (
                    request.id,
                    request.tenant_id,
                    request.user_id,
                    request.employee_name,
                    request.leave_type.value,
                    request.start_date,
                    request.end_date,
                    request.reason,
                    request.status.value,
                    int(request.synced),
                    request.created_at or self._clock(),
                ),
            )
        logger.debug("Leave request saved (local): %s synced=%s", request.id, request.synced)

    def get_leave_requests_by_user(self, tenant_id: str, user_id: str) -> Sequence[LeaveRequest]:
        return self._select_leave("tenant_id=%s AND user_id=%s", (tenant_id, user_id))

    def get_unsynced_leave_requests(self, tenant_id: str) -> Sequence[LeaveRequest]:
        return self._select_leave("tenant_id=%s AND synced=0", (tenant_id,))

    def mark_leave_request_synced(self, request_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE leave_requests SET synced=1 WHERE id=%s", (request_id,))

    def delete_leave_request(self, request_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM leave_requests WHERE id=%s", (request_id,))

    def _select_leave(self, where: str, params: tuple) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, tenant_id, user_id, employee_name, leave_type, start_date, end_date,
                       reason, status, synced, created_at
                FROM leave_requests
                WHERE {where}
                ORDER BY seq
                """,
                params,
            )
            return [
                LeaveRequest(
                    id=str(r["id"]),
                    tenant_id=str(r["tenant_id"]),
                    user_id=str(r["user_id"]),
                    employee_name=r.get("employee_name"),
                    leave_type=LeaveType(r["leave_type"]),
                    start_date=r["start_date"],
                    end_date=r["end_date"],
                    reason=r["reason"],
                    status=RequestStatus(r["status"]),
                    synced=bool(r.get("synced")),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    # ===== Expenses =====

    def save_expense(self, expense: ExpenseRequest) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO expenses
                    (id, tenant_id, user_id, employee_name, amount, category, description,
                     expense_date, receipt_url, status, synced, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    employee_name=VALUES(employee_name), amount=VALUES(amount),
                    category=VALUES(category), description=VALUES(description),
                    expense_date=VALUES(expense_date), receipt_url=VALUES(receipt_url),
                    status=VALUES(status), synced=VALUES(synced)
                """,
                (
                    expense.id,
                    expense.tenant_id,
                    expense.user_id,
                    expense.employee_name,
                    expense.amount,
                    expense.category,
                    expense.description,
                    expense.expense_date,
                    expense.receipt_url,
                    expense.status.value,
                    int(expense.synced),
                    expense.created_at or self._clock(),
                ),
            )
        logger.debug("Expense saved (local): %s synced=%s", expense.id, expense.synced)

    def get_expenses_by_user(self, tenant_id: str, user_id: str) -> Sequence[ExpenseRequest]:
        return self._select_expenses("tenant_id=%s AND user_id=%s", (tenant_id, user_id))

    def get_unsynced_expenses(self, tenant_id: str) -> Sequence[ExpenseRequest]:
        return self._select_expenses("tenant_id=%s AND synced=0", (tenant_id,))

    def mark_expense_synced(self, expense_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE expenses SET synced=1 WHERE id=%s", (expense_id,))

    def delete_expense(self, expense_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM expenses WHERE id=%s", (expense_id,))

    def _select_expenses(self, where: str, params: tuple) -> Sequence[ExpenseRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, tenant_id, user_id, employee_name, amount, category, description,
                       expense_date, receipt_url, status, synced, created_at
                FROM expenses
                WHERE {where}
                ORDER BY seq
                """,
                params,
            )
            return [
                ExpenseRequest(
                    id=str(r["id"]),
                    tenant_id=str(r["tenant_id"]),
                    user_id=str(r["user_id"]),
                    employee_name=r.get("employee_name"),
                    amount=float(r["amount"]),
                    category=r.get("category"),
                    description=r["description"],
                    expense_date=r["expense_date"],
                    receipt_url=r.get("receipt_url"),
                    status=RequestStatus(r["status"]),
                    synced=bool(r.get("synced")),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    # ===== Generic cache =====

    def cache_data(self, type_: str, data: Any, tenant_id: str, user_id: Optional[str] = None) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO cached_data (cache_key, tenant_id, data, cached_at)
                VALUES (%s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    tenant_id=VALUES(tenant_id), data=VALUES(data), cached_at=VALUES(cached_at)
                """,
                (cache_key(type_, user_id), tenant_id, to_json(data), self._clock()),
            )

    def get_cached_data(self, type_: str, tenant_id: str, user_id: Optional[str] = None) -> Optional[Any]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT tenant_id, data, cached_at FROM cached_data WHERE cache_key=%s",
                (cache_key(type_, user_id),),
            )
            row = fetchone(cur)
        if not row or str(row["tenant_id"]) != str(tenant_id):
            return None
        if self._clock() - row["cached_at"] > self._cache_max_age:
            return None
        return from_json(row["data"])

    # ===== Raw request queue =====

    def enqueue_request(self, entry: QueuedRequest) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sync_queue (id, tenant_id, method, path, body, retries, status, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    method=VALUES(method), path=VALUES(path), body=VALUES(body),
                    retries=VALUES(retries), status=VALUES(status)
                """,
                (
                    entry.id,
                    entry.tenant_id,
                    entry.method.upper(),
                    entry.path,
                    to_json(entry.body) if entry.body is not None else None,
                    int(entry.retries),
                    entry.status.value,
                    entry.created_at or self._clock(),
                ),
            )
        logger.info("Enqueued request for sync: %s %s %s", entry.id, entry.method, entry.path)

    def get_queued_requests(self, tenant_id: Optional[str] = None) -> Sequence[QueuedRequest]:
        sql = """
            SELECT id, tenant_id, method, path, body, retries, status, created_at
            FROM sync_queue
            WHERE status <> %s
        """
        params: list = [QueueStatus.DONE.value]
        if tenant_id:
            sql += " AND tenant_id=%s"
            params.append(tenant_id)
        sql += " ORDER BY seq"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [
                QueuedRequest(
                    id=str(r["id"]),
                    tenant_id=str(r["tenant_id"]),
                    method=r["method"],
                    path=r["path"],
                    body=from_json(r.get("body")),
                    retries=int(r.get("retries") or 0),
                    status=QueueStatus(r["status"]),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def update_queued_request(self, entry: QueuedRequest) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sync_queue SET retries=%s, status=%s WHERE id=%s",
                (int(entry.retries), entry.status.value, entry.id),
            )

    # ===== Status / housekeeping =====

    def get_unsynced_count(self, tenant_id: str) -> UnsyncedCount:
        counts = {}
        with db_cursor(self._conn_factory) as (_, cur):
            for table in ("time_punches", "leave_requests", "expenses"):
                cur.execute(f"SELECT COUNT(*) AS n FROM {table} WHERE tenant_id=%s AND synced=0", (tenant_id,))
                row = fetchone(cur) or {"n": 0}
                counts[table] = int(row["n"])
        return UnsyncedCount(
            time_punches=counts["time_punches"],
            leave_requests=counts["leave_requests"],
            expenses=counts["expenses"],
        )

    def clear_tenant_data(self, tenant_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for table in ("time_punches", "leave_requests", "expenses", "sync_queue", "cached_data", "adjustment_staging"):
                cur.execute(f"DELETE FROM {table} WHERE tenant_id=%s", (tenant_id,))
        logger.info("Cleared offline data for tenant: %s", tenant_id)
