from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.ids import new_local_id
from ..common.validators import require_non_empty, require_positive_amount
from ..core.enums import RequestStatus
from ..core.exceptions import RemoteError, ValidationError, is_permanent_rejection
from ..remote.adapters import expense_from_wire, expense_to_wire
from ..remote.client import RemoteApi
from ..storage.repository import OfflineStorage
from ..sync.connectivity import ConnectivityMonitor
from ..sync.engine import ReconciliationEngine
from ..sync.model import MergedView, SubmitResult
from .model import ExpenseRequest

logger = logging.getLogger(__name__)

NOTICE_QUEUED = "Saved offline. It will be submitted when you're back online."


class ExpenseService:
    """Expense claims: offline-first create, edit/cancel while pending."""

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

    def create(
        self,
        *,
        tenant_id: str,
        user_id: str,
        amount,
        description: str,
        expense_date: date,
        category: Optional[str] = None,
        receipt_url: Optional[str] = None,
        employee_name: Optional[str] = None,
    ) -> SubmitResult[ExpenseRequest]:
        expense = ExpenseRequest(
            id=new_local_id("exp"),
            user_id=str(user_id),
            tenant_id=str(tenant_id),
            employee_name=employee_name,
            amount=require_positive_amount(amount, "amount"),
            description=require_non_empty(description, "description"),
            expense_date=expense_date,
            category=category,
            receipt_url=receipt_url,
            status=RequestStatus.PENDING,
            synced=False,
            created_at=self._clock(),
        )

        if self._connectivity.online:
            try:
                created = self._remote.create_expense_claim(tenant_id, expense_to_wire(expense))
            except RemoteError as e:
                if is_permanent_rejection(e):
                    raise
                logger.warning("Expense create failed, queueing: %s", e)
            else:
                confirmed = (
                    expense_from_wire(created, tenant_id=tenant_id) if created.get("id") else expense.mark_synced()
                )
                return SubmitResult(record=confirmed)

        self._storage.save_expense(expense)
        return SubmitResult(record=expense, queued=True, notice=NOTICE_QUEUED)

    def list_expenses(self, *, tenant_id: str, user_id: str) -> MergedView[ExpenseRequest]:
        return self._engine.load_expenses(tenant_id, user_id)

    def _find_pending(self, tenant_id: str, user_id: str, expense_id: str) -> ExpenseRequest:
        view = self.list_expenses(tenant_id=tenant_id, user_id=user_id)
        found = next((e for e in view.records if e.id == str(expense_id)), None)
        if found is None:
            raise ValidationError("Expense not found", field="id")
        if found.status != RequestStatus.PENDING:
            raise ValidationError("Only pending expenses can be changed", field="status")
        return found

    def update(
        self,
        *,
        tenant_id: str,
        user_id: str,
        expense_id: str,
        amount,
        description: str,
        expense_date: date,
        category: Optional[str] = None,
    ) -> SubmitResult[ExpenseRequest]:
        found = self._find_pending(tenant_id, user_id, expense_id)
        updated = replace(
            found,
            amount=require_positive_amount(amount, "amount"),
            description=require_non_empty(description, "description"),
            expense_date=expense_date,
            category=category,
        )
        if not found.synced:
            self._storage.save_expense(updated)
            return SubmitResult(record=updated, queued=True, notice=NOTICE_QUEUED)

        payload = expense_to_wire(updated)
        payload.pop("id", None)
        return self._push_update(tenant_id, updated, payload)

    def cancel(self, *, tenant_id: str, user_id: str, expense_id: str) -> SubmitResult[ExpenseRequest]:
        found = self._find_pending(tenant_id, user_id, expense_id)
        cancelled = replace(found, status=RequestStatus.CANCELLED)
        if not found.synced:
            self._storage.delete_expense(found.id)
            return SubmitResult(record=cancelled)
        return self._push_update(tenant_id, cancelled, {"status": RequestStatus.CANCELLED.value})

    def _push_update(self, tenant_id: str, record: ExpenseRequest, payload: dict) -> SubmitResult[ExpenseRequest]:
        if self._connectivity.online:
            try:
                self._remote.update_expense_claim(tenant_id, record.id, payload)
                return SubmitResult(record=record)
            except RemoteError as e:
                if is_permanent_rejection(e):
                    raise
                logger.warning("Expense %s update failed, queueing: %s", record.id, e)
        self._engine.enqueue(tenant_id, "PUT", f"/api/expenses/{record.id}", payload)
        return SubmitResult(record=record, queued=True, notice=NOTICE_QUEUED)
