from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ..core.enums import QueueStatus


@dataclass(frozen=True)
class QueuedRequest:
    """A raw remote call captured while offline, replayed by the drain."""

    id: str
    tenant_id: str
    method: str
    path: str
    body: Optional[dict[str, Any]] = None
    retries: int = 0
    status: QueueStatus = QueueStatus.PENDING
    created_at: Optional[datetime] = None

    def with_status(self, status: QueueStatus) -> "QueuedRequest":
        return replace(self, status=status)

    def with_retry(self) -> "QueuedRequest":
        return replace(self, retries=self.retries + 1)


@dataclass(frozen=True)
class UnsyncedCount:
    time_punches: int = 0
    leave_requests: int = 0
    expenses: int = 0

    @property
    def total(self) -> int:
        return self.time_punches + self.leave_requests + self.expenses

    def as_dict(self) -> dict:
        return {
            "time_punches": self.time_punches,
            "leave_requests": self.leave_requests,
            "expenses": self.expenses,
            "total": self.total,
        }

