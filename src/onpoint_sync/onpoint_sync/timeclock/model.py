from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..core.enums import PunchType


@dataclass(frozen=True)
class TimeEntry:
    """Thực thể miền (domain): một lần chấm công vào/ra.

    Immutable once created; only ``synced`` flips when the remote confirms it.
    """

    id: str
    user_id: str
    tenant_id: str
    type: PunchType
    timestamp: datetime
    location: Optional[str] = None
    photo_url: Optional[str] = None
    synced: bool = False
    created_at: Optional[datetime] = None

    def mark_synced(self) -> "TimeEntry":
        return replace(self, synced=True)


@dataclass(frozen=True)
class ClockResult:
    entry: TimeEntry
    notice: Optional[str] = None
