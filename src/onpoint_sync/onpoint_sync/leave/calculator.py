from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from ..common.datetime_utils import days_between, inclusive_days, parse_iso_date
from ..core.constants import ANNUAL_LEAVE_MIN_MONTHS, AVERAGE_DAYS_PER_MONTH, MAX_LEAVE_DAYS
from ..core.enums import LeaveType, RequestStatus
from .model import DayCountState, LeaveRequest

NOTICE_CAPPED_INPUT = f"Maximum {MAX_LEAVE_DAYS} days allowed for this leave type."
NOTICE_CAPPED_TYPE = f"Leave duration adjusted to {MAX_LEAVE_DAYS} days (limit for Annual/Sick leave)."


def leave_days_used(
    requests: Iterable[LeaveRequest],
    *,
    today: date,
    leave_type: Optional[LeaveType] = None,
) -> int:
    """Days of approved leave already taken, counting only up to ``today``."""
    used = 0
    for r in requests:
        if r.status != RequestStatus.APPROVED:
            continue
        if leave_type is not None and r.leave_type != leave_type:
            continue
        if r.start_date > today:
            continue
        used += inclusive_days(r.start_date, min(r.end_date, today))
    return used


def months_of_service(hire_date: date | str | None, *, today: date) -> float:
    if not hire_date:
        return 0.0
    if isinstance(hire_date, str):
        try:
            hire_date = parse_iso_date(hire_date[:10])
        except ValueError:
            return 0.0
    if isinstance(hire_date, datetime):
        hire_date = hire_date.date()
    return days_between(hire_date, today) / AVERAGE_DAYS_PER_MONTH


def is_eligible_for_annual_leave(hire_date: date | str | None, *, today: date) -> bool:
    return months_of_service(hire_date, today=today) >= ANNUAL_LEAVE_MIN_MONTHS


def default_leave_type(requested: LeaveType, *, eligible_for_annual: bool) -> LeaveType:
    if requested == LeaveType.ANNUAL and not eligible_for_annual:
        return LeaveType.SICK
    return requested


def max_days_for(leave_type: LeaveType) -> Optional[int]:
    return None if leave_type == LeaveType.MATERNITY else MAX_LEAVE_DAYS


def _end_from(start: date, days: int) -> date:
    return start + timedelta(days=days - 1)


def _clamp(state: DayCountState, notice: str) -> DayCountState:
    """Re-apply the non-maternity cap after any change."""
    cap = max_days_for(state.leave_type)
    try:
        days = int(state.num_days)
    except ValueError:
        return state
    if cap is None or days <= cap:
        return state
    end = _end_from(state.start_date, cap) if state.start_date else state.end_date
    return replace(state, num_days=str(cap), end_date=end, notice=notice)


def dates_changed(state: DayCountState, start: Optional[date], end: Optional[date]) -> DayCountState:
    """Date pair edited: the day count follows (inclusive, order-insensitive)."""
    state = replace(state, start_date=start, end_date=end, notice=None)
    if start and end:
        state = replace(state, num_days=str(inclusive_days(start, end)))
    return _clamp(state, NOTICE_CAPPED_TYPE)


def num_days_changed(state: DayCountState, raw: str, *, today: date) -> DayCountState:
    """Day count typed: the end date follows from the start (today when unset).

    Empty clears the end date. Non-numeric input is ignored. Negative values
    are taken as their absolute value and 0 becomes 1.
    """

    value = (raw or "").strip()
    if value == "":
        return replace(state, num_days="", end_date=None, notice=None)
    try:
        days = int(value)
    except ValueError:
        return state

    days = abs(days) or 1
    notice = None
    cap = max_days_for(state.leave_type)
    if cap is not None and days > cap:
        days = cap
        notice = NOTICE_CAPPED_INPUT

    start = state.start_date or today
    return replace(state, start_date=start, end_date=_end_from(start, days), num_days=str(days), notice=notice)


def leave_type_changed(state: DayCountState, leave_type: LeaveType) -> DayCountState:
    return _clamp(replace(state, leave_type=leave_type, notice=None), NOTICE_CAPPED_TYPE)


def date_clicked(state: DayCountState, clicked: date) -> DayCountState:
    """Calendar selection: first click sets the start, the second the end.

    A click before the current start, or after a complete range, starts a new
    selection of one day.
    """

    if state.start_date is None or clicked < state.start_date or state.end_date is not None:
        return replace(state, start_date=clicked, end_date=None, num_days="1", notice=None)
    return dates_changed(state, state.start_date, clicked)
