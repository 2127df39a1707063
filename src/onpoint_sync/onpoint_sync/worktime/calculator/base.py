from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Sequence

from ...timeclock.model import TimeEntry


class WorkTimeCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def worked(self, entries: Sequence[TimeEntry], day: date, *, now: datetime) -> timedelta:
        raise NotImplementedError
