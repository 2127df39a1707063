from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class ExpenseRequest:
    id: str
    user_id: str
    tenant_id: str
    amount: float
    description: str
    expense_date: date
    status: RequestStatus = RequestStatus.PENDING
    category: Optional[str] = None
    receipt_url: Optional[str] = None
    employee_name: Optional[str] = None
    synced: bool = False
    created_at: Optional[datetime] = None

    def mark_synced(self) -> "ExpenseRequest":
        return replace(self, synced=True)
