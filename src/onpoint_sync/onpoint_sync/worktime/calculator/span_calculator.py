from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Sequence

from ...core.enums import PunchType
from ...timeclock.model import TimeEntry
from .base import WorkTimeCalculator


class SpanWorkTimeCalculator(WorkTimeCalculator):
    """Span rule: latest clock-out minus earliest clock-in of the day.

    Breaks between pairs count as worked time. Today, with no clock-out yet,
    the span runs from the earliest clock-in up to ``now``. Anything else
    without both ends is 0.
    """

    def worked(self, entries: Sequence[TimeEntry], day: date, *, now: datetime) -> timedelta:
        ins = [e.timestamp for e in entries if e.type == PunchType.CLOCK_IN and e.timestamp.date() == day]
        outs = [e.timestamp for e in entries if e.type == PunchType.CLOCK_OUT and e.timestamp.date() == day]
        if not ins:
            return timedelta(0)

        first_in = min(ins)
        if outs:
            return max(max(outs) - first_in, timedelta(0))
        if day == now.date():
            return max(now - first_in, timedelta(0))
        return timedelta(0)
