from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from ..expenses.model import ExpenseRequest
from ..leave.model import LeaveRequest
from ..timeclock.model import TimeEntry
from .model import QueuedRequest, UnsyncedCount


class OfflineStorage(Protocol):
    """Local durable queue + read cache, partitioned by tenant.

    Every method raises ``StorageError`` when the underlying store fails.
    """

    # Time punches
    def save_time_punch(self, punch: TimeEntry) -> None:
        """Insert or replace by id."""

        raise NotImplementedError

    def get_time_punches(self, tenant_id: str, user_id: str) -> Sequence[TimeEntry]:
        raise NotImplementedError

    def get_unsynced_time_punches(self, tenant_id: str) -> Sequence[TimeEntry]:
        """Unsynced punches for a tenant in insertion order."""

        raise NotImplementedError

    def mark_time_punch_synced(self, punch_id: str) -> None:
        raise NotImplementedError

    def delete_time_punch(self, punch_id: str) -> None:
        raise NotImplementedError

    def clear_time_punches(self, tenant_id: str, user_id: str) -> int:
        raise NotImplementedError

    # Leave requests
    def save_leave_request(self, request: LeaveRequest) -> None:
        raise NotImplementedError

    def get_leave_requests_by_user(self, tenant_id: str, user_id: str) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def get_unsynced_leave_requests(self, tenant_id: str) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def mark_leave_request_synced(self, request_id: str) -> None:
        raise NotImplementedError

    def delete_leave_request(self, request_id: str) -> None:
        raise NotImplementedError

    # Expenses
    def save_expense(self, expense: ExpenseRequest) -> None:
        raise NotImplementedError

    def get_expenses_by_user(self, tenant_id: str, user_id: str) -> Sequence[ExpenseRequest]:
        raise NotImplementedError

    def get_unsynced_expenses(self, tenant_id: str) -> Sequence[ExpenseRequest]:
        raise NotImplementedError

    def mark_expense_synced(self, expense_id: str) -> None:
        raise NotImplementedError

    def delete_expense(self, expense_id: str) -> None:
        raise NotImplementedError

    # Generic read cache
    def cache_data(self, type_: str, data: Any, tenant_id: str, user_id: Optional[str] = None) -> None:
        raise NotImplementedError

    def get_cached_data(self, type_: str, tenant_id: str, user_id: Optional[str] = None) -> Optional[Any]:
        """Return the cached payload, or None when missing/stale/other tenant."""

        raise NotImplementedError

    # Raw request queue
    def enqueue_request(self, entry: QueuedRequest) -> None:
        raise NotImplementedError

    def get_queued_requests(self, tenant_id: Optional[str] = None) -> Sequence[QueuedRequest]:
        raise NotImplementedError

    def update_queued_request(self, entry: QueuedRequest) -> None:
        raise NotImplementedError

    # Status / housekeeping
    def get_unsynced_count(self, tenant_id: str) -> UnsyncedCount:
        raise NotImplementedError

    def clear_tenant_data(self, tenant_id: str) -> None:
        raise NotImplementedError


def cache_key(type_: str, user_id: Optional[str] = None) -> str:
    return f"{type_}_{user_id}" if user_id else type_
