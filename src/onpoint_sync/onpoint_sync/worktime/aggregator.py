from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import month_key
from ..core.constants import ACCEPTED_MAX_MINUTES, ACCEPTED_MIN_MINUTES, REQUIRED_DAILY_MINUTES
from ..core.enums import PunchType
from ..timeclock.model import TimeEntry
from .calculator.base import WorkTimeCalculator
from .calculator.span_calculator import SpanWorkTimeCalculator
from .model import AdjustmentCheck, DaySummary

REASON_MISSING_PUNCH = "Missing punch detected"
REASON_UNDER = "Shift under 8 hours (< 7h 50m)"
REASON_OVER = "Shift over 8 hours (> 8h 10m)"


def hour_bank(worked: timedelta, *, required_minutes: int = REQUIRED_DAILY_MINUTES) -> timedelta:
    return worked - timedelta(minutes=required_minutes)


def adjustment_needed(
    worked: timedelta,
    punch_count: int,
    day: date,
    *,
    today: date,
    min_minutes: int = ACCEPTED_MIN_MINUTES,
    max_minutes: int = ACCEPTED_MAX_MINUTES,
) -> AdjustmentCheck:
    """Only closed days qualify; an odd punch count beats the duration checks."""
    if day == today:
        return AdjustmentCheck(False)
    if punch_count % 2 != 0:
        return AdjustmentCheck(True, REASON_MISSING_PUNCH)

    minutes = worked.total_seconds() / 60
    if minutes < min_minutes:
        return AdjustmentCheck(True, REASON_UNDER)
    if minutes > max_minutes:
        return AdjustmentCheck(True, REASON_OVER)
    return AdjustmentCheck(False)


def group_by_day(entries: Sequence[TimeEntry]) -> "OrderedDict[date, list[TimeEntry]]":
    """Entries bucketed by calendar day, most recent day first."""
    buckets: dict[date, list[TimeEntry]] = {}
    for e in entries:
        buckets.setdefault(e.timestamp.date(), []).append(e)
    out: OrderedDict[date, list[TimeEntry]] = OrderedDict()
    for day in sorted(buckets, reverse=True):
        out[day] = sorted(buckets[day], key=lambda e: e.timestamp)
    return out


class WorkAggregator:
    def __init__(
        self,
        *,
        calculator: Optional[WorkTimeCalculator] = None,
        required_minutes: int = REQUIRED_DAILY_MINUTES,
    ):
        self._calculator = calculator or SpanWorkTimeCalculator()
        self._required_minutes = int(required_minutes)

    def summarize_day(self, entries: Sequence[TimeEntry], day: date, *, now: datetime) -> DaySummary:
        day_entries = sorted((e for e in entries if e.timestamp.date() == day), key=lambda e: e.timestamp)
        worked = self._calculator.worked(day_entries, day, now=now)
        ins = [e.timestamp for e in day_entries if e.type == PunchType.CLOCK_IN]
        outs = [e.timestamp for e in day_entries if e.type == PunchType.CLOCK_OUT]
        return DaySummary(
            day=day,
            worked=worked,
            balance=hour_bank(worked, required_minutes=self._required_minutes),
            punch_count=len(day_entries),
            adjustment=adjustment_needed(worked, len(day_entries), day, today=now.date()),
            first_in=min(ins).strftime("%H:%M:%S") if ins else None,
            last_out=max(outs).strftime("%H:%M:%S") if outs else None,
        )

    def summarize_days(self, entries: Sequence[TimeEntry], *, now: datetime) -> list[DaySummary]:
        return [self.summarize_day(day_entries, day, now=now) for day, day_entries in group_by_day(entries).items()]

    def monthly_totals(self, entries: Sequence[TimeEntry], *, now: datetime) -> dict[str, timedelta]:
        totals: dict[str, timedelta] = {}
        for day, day_entries in group_by_day(entries).items():
            worked = self._calculator.worked(day_entries, day, now=now)
            key = month_key(day)
            totals[key] = totals.get(key, timedelta(0)) + worked
        return dict(sorted(totals.items()))
