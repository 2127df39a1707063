from datetime import date

from src.onpoint_sync.onpoint_sync.core.enums import LeaveType, RequestStatus
from src.onpoint_sync.onpoint_sync.leave.calculator import (
    NOTICE_CAPPED_INPUT,
    NOTICE_CAPPED_TYPE,
    date_clicked,
    dates_changed,
    default_leave_type,
    is_eligible_for_annual_leave,
    leave_days_used,
    leave_type_changed,
    months_of_service,
    num_days_changed,
)
from src.onpoint_sync.onpoint_sync.leave.model import DayCountState, LeaveRequest

TODAY = date(2025, 6, 1)


def _state(**kwargs):
    return DayCountState(leave_type=kwargs.pop("leave_type", LeaveType.SICK), **kwargs)


def _leave(start, end, status=RequestStatus.APPROVED, leave_type=LeaveType.ANNUAL):
    return LeaveRequest(
        id=f"{start}",
        user_id="u1",
        tenant_id="t1",
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        reason="",
        status=status,
        synced=True,
    )


def test_date_pair_gives_inclusive_day_count():
    state = dates_changed(_state(), date(2025, 6, 1), date(2025, 6, 5))
    assert state.num_days == "5"


def test_same_day_counts_as_one():
    state = dates_changed(_state(), date(2025, 6, 1), date(2025, 6, 1))
    assert state.num_days == "1"


def test_day_count_moves_end_date():
    state = num_days_changed(_state(start_date=date(2025, 6, 1)), "10", today=TODAY)
    assert state.end_date == date(2025, 6, 10)
    assert state.notice is None


def test_day_count_is_capped_for_non_maternity_leave():
    state = num_days_changed(_state(start_date=date(2025, 6, 1)), "45", today=TODAY)

    assert state.num_days == "30"
    assert state.end_date == date(2025, 6, 30)
    assert state.notice == NOTICE_CAPPED_INPUT


def test_maternity_leave_is_not_capped():
    state = num_days_changed(
        _state(leave_type=LeaveType.MATERNITY, start_date=date(2025, 6, 1)), "90", today=TODAY
    )
    assert state.num_days == "90"
    assert state.end_date == date(2025, 8, 29)


def test_empty_day_count_clears_end_date():
    state = _state(start_date=date(2025, 6, 1), end_date=date(2025, 6, 3), num_days="3")
    state = num_days_changed(state, "", today=TODAY)
    assert state.end_date is None
    assert state.num_days == ""
    assert state.start_date == date(2025, 6, 1)


def test_negative_and_zero_day_counts_are_normalised():
    start = _state(start_date=date(2025, 6, 1))
    assert num_days_changed(start, "-3", today=TODAY).num_days == "3"
    assert num_days_changed(start, "0", today=TODAY).num_days == "1"
    assert num_days_changed(start, "0", today=TODAY).end_date == date(2025, 6, 1)


def test_non_numeric_day_count_is_ignored():
    state = _state(start_date=date(2025, 6, 1), num_days="2")
    assert num_days_changed(state, "abc", today=TODAY) == state


def test_day_count_without_start_uses_today():
    state = num_days_changed(_state(), "2", today=TODAY)
    assert state.start_date == TODAY
    assert state.end_date == date(2025, 6, 2)


def test_switching_to_capped_type_clamps_range():
    state = _state(
        leave_type=LeaveType.MATERNITY,
        start_date=date(2025, 6, 1),
        end_date=date(2025, 7, 30),
        num_days="60",
    )
    state = leave_type_changed(state, LeaveType.SICK)

    assert state.num_days == "30"
    assert state.end_date == date(2025, 6, 30)
    assert state.notice == NOTICE_CAPPED_TYPE


def test_calendar_clicks_select_a_range():
    state = date_clicked(_state(), date(2025, 6, 3))
    assert (state.start_date, state.end_date, state.num_days) == (date(2025, 6, 3), None, "1")

    state = date_clicked(state, date(2025, 6, 6))
    assert state.end_date == date(2025, 6, 6)
    assert state.num_days == "4"

    state = date_clicked(state, date(2025, 6, 10))
    assert (state.start_date, state.end_date) == (date(2025, 6, 10), None)


def test_days_used_counts_approved_leave_up_to_today():
    requests = [
        _leave(date(2025, 5, 1), date(2025, 5, 3)),
        _leave(date(2025, 5, 30), date(2025, 6, 10)),
        _leave(date(2025, 6, 5), date(2025, 6, 6)),
        _leave(date(2025, 5, 10), date(2025, 5, 12), status=RequestStatus.PENDING),
    ]
    assert leave_days_used(requests, today=TODAY) == 3 + 3


def test_days_used_filters_by_type():
    requests = [
        _leave(date(2025, 5, 1), date(2025, 5, 3)),
        _leave(date(2025, 5, 5), date(2025, 5, 5), leave_type=LeaveType.SICK),
    ]
    assert leave_days_used(requests, today=TODAY, leave_type=LeaveType.SICK) == 1


def test_months_of_service():
    assert months_of_service(None, today=TODAY) == 0
    assert months_of_service("not-a-date", today=TODAY) == 0
    assert round(months_of_service("2024-06-01", today=TODAY), 1) == 12.0
    assert is_eligible_for_annual_leave(date(2024, 5, 1), today=TODAY)
    assert not is_eligible_for_annual_leave(date(2025, 1, 1), today=TODAY)


def test_annual_leave_defaults_to_sick_when_not_eligible():
    assert default_leave_type(LeaveType.ANNUAL, eligible_for_annual=False) == LeaveType.SICK
    assert default_leave_type(LeaveType.ANNUAL, eligible_for_annual=True) == LeaveType.ANNUAL
    assert default_leave_type(LeaveType.MATERNITY, eligible_for_annual=False) == LeaveType.MATERNITY
