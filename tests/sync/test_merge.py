from datetime import date, datetime

from src.onpoint_sync.onpoint_sync.adjustments.model import AdjustmentRequest
from src.onpoint_sync.onpoint_sync.core.enums import RequestStatus
from src.onpoint_sync.onpoint_sync.sync.merge import merge_adjustments, merge_by_key


def _adj(adj_id, day, status=RequestStatus.PENDING, reason=""):
    return AdjustmentRequest(
        id=adj_id,
        user_id="u1",
        date=day,
        requested_clock_in=datetime(day.year, day.month, day.day, 8, 0),
        requested_clock_out=datetime(day.year, day.month, day.day, 17, 0),
        reason=reason,
        status=status,
    )


def test_local_wins_on_same_day_and_status():
    remote = [_adj("1", date(2025, 3, 1), reason="server")]
    local = [_adj("temp-x", date(2025, 3, 1), reason="local edit")]

    merged = merge_adjustments(remote, local)

    assert len(merged) == 1
    assert merged[0].reason == "local edit"


def test_different_status_on_same_day_is_not_a_match():
    remote = [_adj("1", date(2025, 3, 1), status=RequestStatus.APPROVED)]
    local = [_adj("temp-x", date(2025, 3, 1))]

    merged = merge_adjustments(remote, local)

    assert [m.id for m in merged] == ["1", "temp-x"]


def test_local_only_records_are_appended_in_order():
    remote = [_adj("1", date(2025, 3, 1))]
    local = [_adj("temp-b", date(2025, 3, 3)), _adj("temp-a", date(2025, 3, 2))]

    merged = merge_adjustments(remote, local)

    assert [m.id for m in merged] == ["1", "temp-b", "temp-a"]


def test_merge_is_idempotent():
    remote = [_adj("1", date(2025, 3, 1)), _adj("2", date(2025, 3, 2))]
    local = [_adj("temp-x", date(2025, 3, 2)), _adj("temp-y", date(2025, 3, 5))]

    once = merge_adjustments(remote, local)
    twice = merge_adjustments(once, local)

    assert once == twice


def test_merge_by_id_keeps_remote_position():
    remote = [{"id": 1, "v": "r1"}, {"id": 2, "v": "r2"}, {"id": 3, "v": "r3"}]
    local = [{"id": 2, "v": "l2"}]

    merged = merge_by_key(remote, local, lambda x: x["id"])

    assert [m["v"] for m in merged] == ["r1", "l2", "r3"]
