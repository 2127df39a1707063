from datetime import date, datetime, timedelta

from src.onpoint_sync.onpoint_sync.core.enums import PunchType
from src.onpoint_sync.onpoint_sync.timeclock.model import TimeEntry
from src.onpoint_sync.onpoint_sync.worktime.aggregator import (
    REASON_MISSING_PUNCH,
    REASON_OVER,
    REASON_UNDER,
    WorkAggregator,
    adjustment_needed,
    group_by_day,
    hour_bank,
)
from src.onpoint_sync.onpoint_sync.worktime.calculator.span_calculator import SpanWorkTimeCalculator

NOW = datetime(2025, 3, 20, 10, 0)


def _e(day, hh, mm, punch_type):
    return TimeEntry(
        id=f"{day}-{hh}{mm}",
        user_id="u1",
        tenant_id="t1",
        type=punch_type,
        timestamp=datetime.combine(day, datetime.min.time()).replace(hour=hh, minute=mm),
        synced=True,
    )


def _shift(day, start, end):
    return [_e(day, *start, PunchType.CLOCK_IN), _e(day, *end, PunchType.CLOCK_OUT)]


def test_span_includes_the_break_between_pairs():
    day = date(2025, 3, 10)
    entries = _shift(day, (8, 0), (12, 0)) + _shift(day, (13, 0), (17, 0))

    worked = SpanWorkTimeCalculator().worked(entries, day, now=NOW)

    assert worked == timedelta(hours=9)


def test_open_shift_today_runs_until_now():
    today = NOW.date()
    entries = [_e(today, 8, 30, PunchType.CLOCK_IN)]

    assert SpanWorkTimeCalculator().worked(entries, today, now=NOW) == timedelta(hours=1, minutes=30)


def test_open_shift_on_past_day_counts_zero():
    day = date(2025, 3, 10)
    assert SpanWorkTimeCalculator().worked([_e(day, 8, 0, PunchType.CLOCK_IN)], day, now=NOW) == timedelta(0)


def test_hour_bank_is_signed():
    assert hour_bank(timedelta(hours=9), required_minutes=480) == timedelta(hours=1)
    assert hour_bank(timedelta(hours=7), required_minutes=480) == timedelta(hours=-1)


def test_adjustment_rules():
    day = date(2025, 3, 10)
    today = NOW.date()

    assert adjustment_needed(timedelta(minutes=480), 2, day, today=today).needed is False
    assert adjustment_needed(timedelta(minutes=470), 2, day, today=today).needed is False
    assert adjustment_needed(timedelta(minutes=490), 2, day, today=today).needed is False
    assert adjustment_needed(timedelta(minutes=460), 2, day, today=today).reason == REASON_UNDER
    assert adjustment_needed(timedelta(minutes=491), 2, day, today=today).reason == REASON_OVER
    assert adjustment_needed(timedelta(minutes=480), 3, day, today=today).reason == REASON_MISSING_PUNCH


def test_today_never_needs_adjustment():
    check = adjustment_needed(timedelta(minutes=10), 1, NOW.date(), today=NOW.date())
    assert check.needed is False


def test_group_by_day_is_newest_first():
    d1, d2 = date(2025, 3, 10), date(2025, 3, 12)
    grouped = group_by_day(_shift(d1, (8, 0), (16, 0)) + _shift(d2, (9, 0), (17, 0)))
    assert list(grouped) == [d2, d1]


def test_summarize_day_reports_balance_and_bounds():
    day = date(2025, 3, 10)
    summary = WorkAggregator().summarize_day(_shift(day, (8, 0), (17, 0)), day, now=NOW)
    row = summary.as_dict()

    assert row["worked"] == "09:00:00"
    assert row["balance"] == "+01:00:00"
    assert row["first_in"] == "08:00:00"
    assert row["last_out"] == "17:00:00"
    assert row["adjustment_needed"] is True
    assert row["adjustment_reason"] == REASON_OVER


def test_monthly_totals_sum_per_month():
    entries = (
        _shift(date(2025, 2, 27), (8, 0), (16, 0))
        + _shift(date(2025, 3, 3), (8, 0), (16, 0))
        + _shift(date(2025, 3, 4), (8, 0), (12, 0))
    )

    totals = WorkAggregator().monthly_totals(entries, now=NOW)

    assert list(totals) == ["2025-02", "2025-03"]
    assert totals["2025-02"] == timedelta(hours=8)
    assert totals["2025-03"] == timedelta(hours=12)
