from __future__ import annotations

from enum import Enum


class PunchType(str, Enum):
    """Loại chấm công (wire value: clock_in / clock_out)."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"


class RequestStatus(str, Enum):
    """Approval workflow status shared by adjustments, leave and expenses."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {RequestStatus.REJECTED, RequestStatus.CANCELLED}


class LeaveType(str, Enum):
    ANNUAL = "Annual Leave"
    MATERNITY = "Maternity Leave"
    SICK = "Sick Leave"


class DataSource(str, Enum):
    """Where a merged view got its remote half from."""

    REMOTE = "REMOTE"
    CACHE = "CACHE"
    OFFLINE_NO_CACHE = "OFFLINE_NO_CACHE"


class QueueStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
