from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import format_duration


@dataclass(frozen=True)
class AdjustmentCheck:
    needed: bool
    reason: str = ""


@dataclass(frozen=True)
class DaySummary:
    day: date
    worked: timedelta
    balance: timedelta
    punch_count: int
    adjustment: AdjustmentCheck
    first_in: Optional[str] = None
    last_out: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "worked": format_duration(self.worked),
            "worked_minutes": int(self.worked.total_seconds() // 60),
            "balance": format_duration(self.balance, with_sign=True),
            "punch_count": self.punch_count,
            "first_in": self.first_in,
            "last_out": self.last_out,
            "adjustment_needed": self.adjustment.needed,
            "adjustment_reason": self.adjustment.reason,
        }
