import threading
from datetime import datetime

import pytest

from src.onpoint_sync.onpoint_sync.common.scheduler import PollingTask
from src.onpoint_sync.onpoint_sync.core.enums import PunchType
from src.onpoint_sync.onpoint_sync.sync.connectivity import ConnectivityMonitor
from src.onpoint_sync.onpoint_sync.sync.engine import ReconciliationEngine
from src.onpoint_sync.onpoint_sync.sync.session import SyncSession
from src.onpoint_sync.onpoint_sync.timeclock.model import TimeEntry


def test_listeners_fire_only_on_reconnect():
    calls = []
    monitor = ConnectivityMonitor(online=False)
    monitor.add_listener(lambda: calls.append("drain"))

    assert monitor.set_online(True) is True
    assert monitor.set_online(True) is False
    monitor.set_online(False)
    monitor.set_online(True)

    assert calls == ["drain", "drain"]


def test_failing_listener_does_not_stop_others():
    calls = []
    monitor = ConnectivityMonitor(online=False)

    def broken():
        raise RuntimeError("boom")

    monitor.add_listener(broken)
    monitor.add_listener(lambda: calls.append("ok"))
    monitor.set_online(True)

    assert calls == ["ok"]


def test_polling_task_runs_until_stopped():
    ticks = threading.Semaphore(0)
    task = PollingTask(ticks.release, interval_seconds=0.01, name="test")

    task.start()
    try:
        assert ticks.acquire(timeout=2)
        assert ticks.acquire(timeout=2)
        assert task.running
    finally:
        task.stop(timeout=2)

    assert not task.running


def test_polling_task_survives_a_failing_run():
    runs = []

    def job():
        runs.append(1)
        raise RuntimeError("boom")

    task = PollingTask(job, interval_seconds=1, name="test")
    task.run_once()
    task.run_once()

    assert len(runs) == 2


def test_polling_interval_must_be_positive():
    with pytest.raises(ValueError):
        PollingTask(lambda: None, interval_seconds=0)


def _punch(punch_id, hh, punch_type):
    return TimeEntry(
        id=punch_id,
        user_id="u1",
        tenant_id="t1",
        type=punch_type,
        timestamp=datetime(2025, 3, 10, hh, 0),
    )


def test_session_drains_on_reconnect_and_stops_listening_after_close(storage, remote, staging):
    monitor = ConnectivityMonitor(online=False)
    engine = ReconciliationEngine(storage, remote, staging)
    sync = SyncSession(engine, monitor, tenant_id="t1", user_id="u1", interval_seconds=60)
    storage.save_time_punch(_punch("te-1", 8, PunchType.CLOCK_IN))

    sync.open(run_immediately=False)
    try:
        monitor.set_online(True)
    finally:
        sync.close()

    assert sync.last_report.synced["time_punches"] == ["te-1"]
    assert not sync.running

    monitor.set_online(False)
    storage.save_time_punch(_punch("te-2", 17, PunchType.CLOCK_OUT))
    monitor.set_online(True)
    assert [p.id for p in storage.get_unsynced_time_punches("t1")] == ["te-2"]


def test_session_refresh_keeps_last_view(storage, remote, staging):
    engine = ReconciliationEngine(storage, remote, staging)
    sync = SyncSession(engine, ConnectivityMonitor(), tenant_id="t1", user_id="u1")

    view = sync.refresh()

    assert sync.last_view is view
    assert view.records == []
