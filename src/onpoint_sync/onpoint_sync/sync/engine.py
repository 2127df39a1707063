from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Sequence, TypeVar

from ..adjustments.model import AdjustmentRequest
from ..adjustments.repository import AdjustmentStagingStore
from ..common.datetime_utils import now_local
from ..common.ids import new_local_id
from ..core.constants import DEFAULT_MAX_QUEUE_RETRIES, NOTICE_CACHED, NOTICE_NO_CACHE
from ..core.enums import DataSource, QueueStatus, RequestStatus
from ..core.exceptions import DomainError, RemoteError, StorageError, is_permanent_rejection
from ..expenses.model import ExpenseRequest
from ..leave.model import LeaveRequest
from ..remote.adapters import (
    adjustment_create_payload,
    adjustment_from_wire,
    expense_from_wire,
    expense_to_wire,
    leave_from_wire,
    leave_to_wire,
    time_entry_from_wire,
    time_entry_to_wire,
)
from ..remote.client import RemoteApi
from ..storage.model import QueuedRequest
from ..storage.repository import OfflineStorage
from ..timeclock.model import TimeEntry
from .merge import merge_adjustments, merge_by_key, merge_punches
from .model import DrainReport, MergedView

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReconciliationEngine:
    """Keeps the local store and the remote system of record eventually consistent.

    Reads: fetch remote (write-through into the read cache), fall back to the
    cache, merge with locally queued records, persist the local half back.
    Writes: drain queued records one by one; a failure leaves the record
    queued for the next pass.
    """

    def __init__(
        self,
        storage: OfflineStorage,
        remote: RemoteApi,
        staging: AdjustmentStagingStore,
        *,
        max_queue_retries: int = DEFAULT_MAX_QUEUE_RETRIES,
    ):
        self._storage = storage
        self._remote = remote
        self._staging = staging
        self._max_queue_retries = int(max_queue_retries)
        self._drain_lock = threading.Lock()

    # ===== Read path =====

    def fetch_with_fallback(
        self,
        cache_type: str,
        tenant_id: str,
        user_id: Optional[str],
        fetch: Callable[[], Any],
    ) -> tuple[Any, DataSource, Optional[str]]:
        try:
            data = fetch()
        except RemoteError as e:
            logger.warning("Fetch %s failed, falling back to cache: %s", cache_type, e)
            try:
                cached = self._storage.get_cached_data(cache_type, tenant_id, user_id)
            except StorageError as se:
                logger.error("Cache read %s failed: %s", cache_type, se)
                cached = None
            if cached is None:
                return None, DataSource.OFFLINE_NO_CACHE, NOTICE_NO_CACHE
            return cached, DataSource.CACHE, NOTICE_CACHED

        try:
            self._storage.cache_data(cache_type, data, tenant_id, user_id)
        except StorageError as e:
            logger.error("Cache write %s failed: %s", cache_type, e)
        return data, DataSource.REMOTE, None

    def load_adjustments(self, tenant_id: str, user_id: str) -> MergedView[AdjustmentRequest]:
        raw, source, notice = self.fetch_with_fallback(
            "adjustments",
            tenant_id,
            user_id,
            lambda: self._remote.get_time_adjustment_requests(tenant_id, user_id=user_id),
        )
        remote = _map_all(raw, adjustment_from_wire)
        local = self._load_staged(tenant_id, user_id)

        if source != DataSource.OFFLINE_NO_CACHE:
            # Confirmed ids the server already lists are no longer local work.
            remote_ids = {r.id for r in remote}
            local = [r for r in local if r.is_provisional or r.id not in remote_ids]

        merged = merge_adjustments(remote, local)

        local_ids = {id(r) for r in local}
        still_local = [r for r in merged if id(r) in local_ids]
        try:
            self._staging.save_all(tenant_id, user_id, still_local)
        except StorageError as e:
            logger.error("Persisting staged adjustments failed: %s", e)

        return MergedView(records=merged, source=source, notice=notice)

    def load_time_entries(self, tenant_id: str, user_id: str, day: Optional[str] = None) -> MergedView[TimeEntry]:
        cache_type = f"time_entries_{day}" if day else "time_entries"
        raw, source, notice = self.fetch_with_fallback(
            cache_type,
            tenant_id,
            user_id,
            lambda: self._remote.get_time_entries(tenant_id, user_id, day),
        )
        remote = _map_all(raw, lambda item: time_entry_from_wire(item, tenant_id=tenant_id))
        local = [
            p
            for p in self._safe_read(lambda: self._storage.get_time_punches(tenant_id, user_id))
            if not p.synced and (day is None or p.timestamp.date().isoformat() == day)
        ]
        return MergedView(records=merge_punches(remote, local), source=source, notice=notice)

    def load_leave_requests(self, tenant_id: str, user_id: str) -> MergedView[LeaveRequest]:
        raw, source, notice = self.fetch_with_fallback(
            "leave_requests",
            tenant_id,
            user_id,
            lambda: self._remote.get_leave_requests(tenant_id, user_id=user_id),
        )
        remote = _map_all(raw, lambda item: leave_from_wire(item, tenant_id=tenant_id))
        local = [
            r
            for r in self._safe_read(lambda: self._storage.get_leave_requests_by_user(tenant_id, user_id))
            if not r.synced
        ]
        return MergedView(records=merge_by_key(remote, local, lambda r: r.id), source=source, notice=notice)

    def load_expenses(self, tenant_id: str, user_id: str) -> MergedView[ExpenseRequest]:
        raw, source, notice = self.fetch_with_fallback(
            "expenses",
            tenant_id,
            user_id,
            lambda: self._remote.get_expense_claims(tenant_id, user_id=user_id),
        )
        remote = _map_all(raw, lambda item: expense_from_wire(item, tenant_id=tenant_id))
        local = [
            e
            for e in self._safe_read(lambda: self._storage.get_expenses_by_user(tenant_id, user_id))
            if not e.synced
        ]
        return MergedView(records=merge_by_key(remote, local, lambda e: e.id), source=source, notice=notice)

    def _load_staged(self, tenant_id: str, user_id: str) -> list[AdjustmentRequest]:
        return list(self._safe_read(lambda: self._staging.load(tenant_id, user_id)))

    @staticmethod
    def _safe_read(read: Callable[[], Sequence[T]]) -> Sequence[T]:
        try:
            return read()
        except StorageError as e:
            logger.error("Local store read failed: %s", e)
            return []

    # ===== Write path (drain) =====

    def drain(self, tenant_id: str, user_id: Optional[str] = None) -> DrainReport:
        """Flush everything queued for a tenant; punches first, in order.

        Only one drain runs at a time; a concurrent call returns a skipped
        report instead of interleaving with the running one.
        """

        if not self._drain_lock.acquire(blocking=False):
            logger.info("Drain already running for tenant %s; skipping", tenant_id)
            return DrainReport(skipped=True)
        try:
            report = DrainReport()
            self.drain_time_punches(tenant_id, report)
            self.drain_leave_requests(tenant_id, report)
            self.drain_expenses(tenant_id, report)
            if user_id:
                self.drain_adjustments(tenant_id, user_id, report)
            self.process_queue(tenant_id, report)
            logger.info(
                "Drain finished for tenant %s: %d synced, %d failed",
                tenant_id,
                report.synced_count,
                report.failed_count,
            )
            return report
        finally:
            self._drain_lock.release()

    def drain_time_punches(self, tenant_id: str, report: Optional[DrainReport] = None) -> DrainReport:
        report = report or DrainReport()
        for punch in self._safe_read(lambda: self._storage.get_unsynced_time_punches(tenant_id)):
            try:
                self._remote.save_time_punch(tenant_id, time_entry_to_wire(punch))
                self._storage.mark_time_punch_synced(punch.id)
                self._storage.delete_time_punch(punch.id)
            except (RemoteError, StorageError) as e:
                self._record_failure(
                    report, "time_punches", punch.id, e, lambda: self._storage.delete_time_punch(punch.id)
                )
                continue
            report.add_synced("time_punches", punch.id)
        return report

    def drain_leave_requests(self, tenant_id: str, report: Optional[DrainReport] = None) -> DrainReport:
        report = report or DrainReport()
        for req in self._safe_read(lambda: self._storage.get_unsynced_leave_requests(tenant_id)):
            try:
                self._remote.create_leave_request(tenant_id, leave_to_wire(req))
                self._storage.mark_leave_request_synced(req.id)
                self._storage.delete_leave_request(req.id)
            except (RemoteError, StorageError) as e:
                self._record_failure(
                    report, "leave_requests", req.id, e, lambda: self._storage.delete_leave_request(req.id)
                )
                continue
            report.add_synced("leave_requests", req.id)
        return report

    def drain_expenses(self, tenant_id: str, report: Optional[DrainReport] = None) -> DrainReport:
        report = report or DrainReport()
        for expense in self._safe_read(lambda: self._storage.get_unsynced_expenses(tenant_id)):
            try:
                self._remote.create_expense_claim(tenant_id, expense_to_wire(expense))
                self._storage.mark_expense_synced(expense.id)
                self._storage.delete_expense(expense.id)
            except (RemoteError, StorageError) as e:
                self._record_failure(
                    report, "expenses", expense.id, e, lambda: self._storage.delete_expense(expense.id)
                )
                continue
            report.add_synced("expenses", expense.id)
        return report

    def _record_failure(
        self,
        report: DrainReport,
        kind: str,
        record_id: str,
        error: DomainError,
        discard: Callable[[], None],
    ) -> None:
        """Keep the record queued, unless the server refused it for good."""
        if not is_permanent_rejection(error):
            logger.error("Failed to sync %s %s: %s", kind, record_id, error)
            report.add_failed(kind, record_id)
            return

        logger.warning("Discarding %s %s rejected by the server: %s", kind, record_id, error)
        try:
            discard()
        except StorageError as se:
            logger.error("Could not drop rejected %s %s: %s", kind, record_id, se)
            report.add_failed(kind, record_id)
            return
        report.discarded.append(record_id)

    def drain_adjustments(self, tenant_id: str, user_id: str, report: Optional[DrainReport] = None) -> DrainReport:
        """Submit staged requests still carrying a provisional id; swap in server ids."""

        report = report or DrainReport()
        staged = self._load_staged(tenant_id, user_id)
        if not staged:
            return report

        updated: list[AdjustmentRequest] = []
        for req in staged:
            if not req.is_provisional or req.status != RequestStatus.PENDING:
                updated.append(req)
                continue
            try:
                created = self._remote.create_time_adjustment_request(tenant_id, adjustment_create_payload(req))
            except RemoteError as e:
                if is_permanent_rejection(e):
                    logger.warning("Discarding adjustment %s rejected by the server: %s", req.id, e)
                    report.discarded.append(req.id)
                    continue
                logger.error("Failed to submit adjustment %s: %s", req.id, e)
                report.add_failed("adjustments", req.id)
                updated.append(req)
                continue

            server_id = (created or {}).get("id")
            confirmed = req.confirmed(server_id) if server_id else req
            updated.append(confirmed)
            report.add_synced("adjustments", confirmed.id)

        try:
            self._staging.save_all(tenant_id, user_id, updated)
        except StorageError as e:
            logger.error("Persisting confirmed adjustments failed: %s", e)
        return report

    def process_queue(self, tenant_id: Optional[str] = None, report: Optional[DrainReport] = None) -> DrainReport:
        """Replay raw queued requests.

        Success marks the entry done. A non-retryable rejection, or an entry
        that already used up its retries, is discarded (marked done). Anything
        else bumps the retry counter and stays queued.
        """

        report = report or DrainReport()
        for entry in self._safe_read(lambda: self._storage.get_queued_requests(tenant_id)):
            try:
                self._remote.send(entry.tenant_id, entry.method, entry.path, entry.body)
            except RemoteError as e:
                if is_permanent_rejection(e) or entry.retries >= self._max_queue_retries:
                    logger.warning("Discarding queue entry %s: %s", entry.id, e)
                    self._update_queue(entry.with_status(QueueStatus.DONE))
                    report.discarded.append(entry.id)
                else:
                    logger.warning("Queue entry %s failed, will retry later: %s", entry.id, e)
                    self._update_queue(entry.with_retry())
                    report.add_failed("queue", entry.id)
                continue

            self._update_queue(entry.with_status(QueueStatus.DONE))
            report.add_synced("queue", entry.id)
        return report

    def enqueue(self, tenant_id: str, method: str, path: str, body: Optional[dict] = None) -> QueuedRequest:
        """Capture a remote call for later replay by ``process_queue``."""
        entry = QueuedRequest(
            id=new_local_id("rq"),
            tenant_id=str(tenant_id),
            method=method.upper(),
            path=path,
            body=body,
            created_at=now_local(),
        )
        self._storage.enqueue_request(entry)
        logger.info("Queued %s %s for tenant %s", entry.method, path, tenant_id)
        return entry

    def _update_queue(self, entry: QueuedRequest) -> None:
        try:
            self._storage.update_queued_request(entry)
        except StorageError as e:
            logger.error("Updating queue entry %s failed: %s", entry.id, e)


def _map_all(raw: Any, mapper: Callable[[dict], T]) -> list[T]:
    out: list[T] = []
    for item in raw or []:
        try:
            out.append(mapper(item))
        except (DomainError, KeyError, ValueError) as e:
            logger.warning("Skipping malformed remote record %r: %s", item, e)
    return out
