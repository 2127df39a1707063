from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..common.ids import is_provisional
from ..core.enums import PunchType, RequestStatus


@dataclass(frozen=True)
class AdjustmentRequest:
    """A user's proposal to add or correct punches for one calendar day.

    ``date`` is the local calendar day, not a timestamp. While offline the id
    is provisional (``temp-...``) and is swapped for the server id once the
    remote confirms the request.
    """

    id: str
    user_id: str
    date: date
    requested_clock_in: Optional[datetime]
    requested_clock_out: Optional[datetime]
    reason: str
    status: RequestStatus = RequestStatus.PENDING
    employee_name: Optional[str] = None
    original_clock_in: Optional[datetime] = None
    original_clock_out: Optional[datetime] = None
    requested_clock_in_2: Optional[datetime] = None
    requested_clock_out_2: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    @property
    def is_provisional(self) -> bool:
        return is_provisional(self.id)

    @property
    def business_key(self) -> tuple[str, str]:
        return (self.date.isoformat(), self.status.value)

    def confirmed(self, server_id: str) -> "AdjustmentRequest":
        return replace(self, id=str(server_id))


@dataclass(frozen=True)
class AdjustmentDraft:
    """Editor-local punch being added; never persisted as such.

    ``time`` is ``"HH:MM"`` or empty while the user has not picked it yet.
    ``sequence`` is the creation order inside the editor.
    """

    id: str
    sequence: int
    time: str = ""
    reason: str = ""
    document: Optional[str] = None

    @property
    def has_time(self) -> bool:
        return bool((self.time or "").strip())


@dataclass(frozen=True)
class TimelineEntry:
    """Derived view row: a confirmed punch or a draft with its inferred type."""

    timestamp: datetime
    is_new: bool
    inferred_type: PunchType
    entry_id: Optional[str] = None
    draft_id: Optional[str] = None
    recorded_type: Optional[PunchType] = None
    placeholder: bool = False
