from datetime import date

import pytest

from src.onpoint_sync.onpoint_sync.core.enums import LeaveType, PunchType, RequestStatus
from src.onpoint_sync.onpoint_sync.core.exceptions import ValidationError
from src.onpoint_sync.onpoint_sync.database.bootstrap import split_sql_statements
from src.onpoint_sync.onpoint_sync.remote.adapters import (
    adjustment_from_wire,
    leave_from_wire,
    parse_punch_type,
    parse_status,
)
from src.onpoint_sync.onpoint_sync.storage.repository import cache_key


def test_cache_key_is_scoped_by_user():
    assert cache_key("leave_requests") == "leave_requests"
    assert cache_key("leave_requests", "u7") == "leave_requests_u7"


def test_split_sql_ignores_semicolons_in_strings():
    sql = "CREATE TABLE a (x INT);\nINSERT INTO a VALUES ('x;y');\n\n"
    assert list(split_sql_statements(sql)) == [
        "CREATE TABLE a (x INT)",
        "INSERT INTO a VALUES ('x;y')",
    ]


def test_status_and_type_parsing_is_lenient_on_case():
    assert parse_status("approved") == RequestStatus.APPROVED
    assert parse_status("") == RequestStatus.PENDING
    assert parse_punch_type("Clock In") == PunchType.CLOCK_IN
    with pytest.raises(ValidationError):
        parse_status("archived")


def test_adjustment_date_falls_back_to_requested_clock_in():
    req = adjustment_from_wire(
        {"id": 5, "employee_id": 2, "requested_clock_in": "2025-03-10T08:00:00Z"}
    )
    assert req.id == "5"
    assert req.user_id == "2"
    assert req.status == RequestStatus.PENDING
    assert not req.is_provisional


def test_leave_wire_accepts_datetime_strings():
    req = leave_from_wire(
        {
            "id": "1",
            "employee_id": "u1",
            "leave_type": "maternity",
            "start_date": "2025-06-01T00:00:00",
            "end_date": "2025-06-30",
        },
        tenant_id="t1",
    )
    assert req.leave_type == LeaveType.MATERNITY
    assert (req.start_date, req.end_date) == (date(2025, 6, 1), date(2025, 6, 30))
    assert req.tenant_id == "t1"
    assert req.synced
