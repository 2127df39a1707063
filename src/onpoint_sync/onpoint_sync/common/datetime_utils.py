from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the wire into a naive local datetime."""
    if not value:
        return None
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    parsed = datetime.fromisoformat(v)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_hhmm(value: str, *, field: str = "time") -> time:
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError("Invalid time (HH:MM)", field=field)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def today_local() -> date:
    return now_local().date()


def local_midnight(value: date | datetime) -> datetime:
    """Normalize to 00:00 local so day arithmetic is not skewed by time of day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def days_between(start: date | datetime, end: date | datetime) -> int:
    return (local_midnight(end) - local_midnight(start)).days


def inclusive_days(start: date | datetime, end: date | datetime) -> int:
    """Number of calendar days covered by [start, end], order-insensitive."""
    return abs(days_between(start, end)) + 1


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time(23, 59, 59))


def month_key(day: date | datetime) -> str:
    return f"{day.year}-{day.month:02d}"


def format_duration(delta: timedelta | float, *, with_sign: bool = False) -> str:
    """Format a duration as HH:MM:SS, with an explicit +/- when asked."""
    seconds = delta.total_seconds() if isinstance(delta, timedelta) else float(delta)
    negative = seconds < 0
    total = int(abs(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    sign = "-" if negative else ("+" if with_sign else "")
    return f"{sign}{hours:02d}:{minutes:02d}:{secs:02d}"


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
