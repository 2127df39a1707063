from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveType, RequestStatus


@dataclass(frozen=True)
class LeaveRequest:
    id: str
    user_id: str
    tenant_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str
    status: RequestStatus = RequestStatus.PENDING
    employee_name: Optional[str] = None
    synced: bool = False
    created_at: Optional[datetime] = None

    def mark_synced(self) -> "LeaveRequest":
        return replace(self, synced=True)


@dataclass(frozen=True)
class LeaveBalance:
    user_id: str
    annual: float = 0
    maternity: float = 0
    sick: float = 0


@dataclass(frozen=True)
class DayCountState:
    """Leave form state kept consistent between the date pair and day count."""

    leave_type: LeaveType
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    num_days: str = ""
    notice: Optional[str] = None
