from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.ids import new_local_id
from ..core.enums import DataSource, LeaveType, RequestStatus
from ..core.exceptions import RemoteError, ValidationError, is_permanent_rejection
from ..remote.adapters import leave_balance_from_wire, leave_from_wire, leave_to_wire
from ..remote.client import RemoteApi
from ..storage.repository import OfflineStorage
from ..sync.connectivity import ConnectivityMonitor
from ..sync.engine import ReconciliationEngine
from ..sync.model import MergedView, SubmitResult
from .calculator import is_eligible_for_annual_leave, leave_days_used, max_days_for
from .model import LeaveBalance, LeaveRequest

logger = logging.getLogger(__name__)

NOTICE_QUEUED = "Saved offline. It will be submitted when you're back online."


class LeaveService:
    def __init__(
        self,
        storage: OfflineStorage,
        remote: RemoteApi,
        engine: ReconciliationEngine,
        connectivity: ConnectivityMonitor,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._storage = storage
        self._remote = remote
        self._engine = engine
        self._connectivity = connectivity
        self._clock = clock

    def _validate(
        self,
        *,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        hire_date: date | str | None,
    ) -> None:
        today = self._clock().date()
        if end_date < start_date:
            raise ValidationError("End date must be on or after start date", field="end_date")
        if start_date < today:
            raise ValidationError("Leave cannot start in the past", field="start_date")
        cap = max_days_for(leave_type)
        if cap is not None and (end_date - start_date).days + 1 > cap:
            raise ValidationError(f"Maximum {cap} days allowed for this leave type", field="num_days")
        # A missing hire date counts as 0 months of service.
        if leave_type == LeaveType.ANNUAL and not is_eligible_for_annual_leave(hire_date, today=today):
            raise ValidationError("Annual leave is available after 12 months of service", field="leave_type")

    def create(
        self,
        *,
        tenant_id: str,
        user_id: str,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str = "",
        employee_name: Optional[str] = None,
        hire_date: date | str | None = None,
    ) -> SubmitResult[LeaveRequest]:
        self._validate(leave_type=leave_type, start_date=start_date, end_date=end_date, hire_date=hire_date)

        req = LeaveRequest(
            id=new_local_id("lr"),
            user_id=str(user_id),
            tenant_id=str(tenant_id),
            employee_name=employee_name,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=(reason or "").strip(),
            status=RequestStatus.PENDING,
            synced=False,
            created_at=self._clock(),
        )

        if self._connectivity.online:
            try:
                created = self._remote.create_leave_request(tenant_id, leave_to_wire(req))
            except RemoteError as e:
                if is_permanent_rejection(e):
                    raise
                logger.warning("Leave request create failed, queueing: %s", e)
            else:
                confirmed = leave_from_wire(created, tenant_id=tenant_id) if created.get("id") else req.mark_synced()
                return SubmitResult(record=confirmed)

        self._storage.save_leave_request(req)
        return SubmitResult(record=req, queued=True, notice=NOTICE_QUEUED)

    def list_requests(self, *, tenant_id: str, user_id: str) -> MergedView[LeaveRequest]:
        return self._engine.load_leave_requests(tenant_id, user_id)

    def _find_pending(self, tenant_id: str, user_id: str, request_id: str) -> LeaveRequest:
        view = self.list_requests(tenant_id=tenant_id, user_id=user_id)
        found = next((r for r in view.records if r.id == str(request_id)), None)
        if found is None:
            raise ValidationError("Leave request not found", field="id")
        if found.status != RequestStatus.PENDING:
            raise ValidationError("Only pending requests can be changed", field="status")
        return found

    def cancel(self, *, tenant_id: str, user_id: str, request_id: str) -> SubmitResult[LeaveRequest]:
        found = self._find_pending(tenant_id, user_id, request_id)
        cancelled = replace(found, status=RequestStatus.CANCELLED)

        if not found.synced:
            # Never reached the server: dropping the local copy is the cancel.
            self._storage.delete_leave_request(found.id)
            return SubmitResult(record=cancelled)
        return self._push_update(tenant_id, cancelled, {"status": RequestStatus.CANCELLED.value})

    def update(
        self,
        *,
        tenant_id: str,
        user_id: str,
        request_id: str,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str = "",
        hire_date: date | str | None = None,
    ) -> SubmitResult[LeaveRequest]:
        found = self._find_pending(tenant_id, user_id, request_id)
        self._validate(leave_type=leave_type, start_date=start_date, end_date=end_date, hire_date=hire_date)
        updated = replace(
            found,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=(reason or "").strip(),
        )

        if not found.synced:
            self._storage.save_leave_request(updated)
            return SubmitResult(record=updated, queued=True, notice=NOTICE_QUEUED)

        payload = leave_to_wire(updated)
        payload.pop("id", None)
        return self._push_update(tenant_id, updated, payload)

    def _push_update(self, tenant_id: str, record: LeaveRequest, payload: dict) -> SubmitResult[LeaveRequest]:
        if self._connectivity.online:
            try:
                self._remote.update_leave_request(tenant_id, record.id, payload)
                return SubmitResult(record=record)
            except RemoteError as e:
                if is_permanent_rejection(e):
                    raise
                logger.warning("Leave request %s update failed, queueing: %s", record.id, e)
        self._engine.enqueue(tenant_id, "PUT", f"/api/leave/requests/{record.id}", payload)
        return SubmitResult(record=record, queued=True, notice=NOTICE_QUEUED)

    def balances(self, *, tenant_id: str, user_id: str) -> tuple[LeaveBalance, DataSource, Optional[str]]:
        raw, source, notice = self._engine.fetch_with_fallback(
            "leave_balances",
            tenant_id,
            user_id,
            lambda: self._remote.get_leave_balances(tenant_id, user_id),
        )
        return leave_balance_from_wire(raw, user_id=user_id), source, notice

    def days_used(self, *, tenant_id: str, user_id: str, leave_type: Optional[LeaveType] = None) -> int:
        view = self.list_requests(tenant_id=tenant_id, user_id=user_id)
        return leave_days_used(view.records, today=self._clock().date(), leave_type=leave_type)
