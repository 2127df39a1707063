from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import format_duration, now_local
from ..core.constants import REQUIRED_DAILY_MINUTES
from ..sync.engine import ReconciliationEngine
from .aggregator import WorkAggregator
from .calculator.base import WorkTimeCalculator


class WorkSummaryService:
    """Daily history rows and today's numbers for the clock screen."""

    def __init__(
        self,
        engine: ReconciliationEngine,
        *,
        calculator: Optional[WorkTimeCalculator] = None,
        required_minutes: int = REQUIRED_DAILY_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._engine = engine
        self._aggregator = WorkAggregator(calculator=calculator, required_minutes=required_minutes)
        self._required_minutes = int(required_minutes)
        self._clock = clock

    def history(self, *, tenant_id: str, user_id: str) -> dict:
        now = self._clock()
        view = self._engine.load_time_entries(tenant_id, user_id)
        days = self._aggregator.summarize_days(view.records, now=now)
        monthly = self._aggregator.monthly_totals(view.records, now=now)
        return {
            "days": [d.as_dict() for d in days],
            "monthly": {k: format_duration(v) for k, v in monthly.items()},
            "source": view.source.value,
            "notice": view.notice,
        }

    def today(self, *, tenant_id: str, user_id: str) -> dict:
        now = self._clock()
        view = self._engine.load_time_entries(tenant_id, user_id, now.date().isoformat())
        summary = self._aggregator.summarize_day(view.records, now.date(), now=now)
        worked_seconds = summary.worked.total_seconds()
        progress = min(100.0, max(0.0, worked_seconds / (self._required_minutes * 60) * 100))
        return {
            **summary.as_dict(),
            "progress_percent": round(progress, 1),
            "source": view.source.value,
            "notice": view.notice,
        }
