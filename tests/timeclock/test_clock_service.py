import threading
import time
from datetime import datetime

import pytest

from src.onpoint_sync.onpoint_sync.core.constants import LOCATION_UNAVAILABLE
from src.onpoint_sync.onpoint_sync.core.enums import PunchType
from src.onpoint_sync.onpoint_sync.core.exceptions import ConflictError, RemoteRejectedError, StorageError
from src.onpoint_sync.onpoint_sync.sync.connectivity import ConnectivityMonitor
from src.onpoint_sync.onpoint_sync.sync.engine import ReconciliationEngine
from src.onpoint_sync.onpoint_sync.timeclock.service import NOTICE_SAVED_OFFLINE, ClockService

NOW = datetime(2025, 3, 10, 8, 0)


class FixedLocation:
    def current_position(self, *, timeout_seconds):
        return (10.762622, 106.660172)

    def address_for(self, latitude, longitude):
        return "District 10, Ho Chi Minh City"


class BlockingLocation:
    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def current_position(self, *, timeout_seconds):
        self.entered.set()
        self.release.wait(5)
        return (0.0, 0.0)

    def address_for(self, latitude, longitude):
        return None


def _service(storage, remote, staging, *, online=True, location_provider=None):
    connectivity = ConnectivityMonitor(online=online)
    engine = ReconciliationEngine(storage, remote, staging)
    return ClockService(
        storage,
        remote,
        engine,
        connectivity,
        location_provider=location_provider,
        location_timeout_seconds=0.5,
        clock=lambda: NOW,
    )


def test_online_clock_in_is_sent_and_kept_synced(storage, remote, staging):
    service = _service(storage, remote, staging, location_provider=FixedLocation())

    result = service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN)

    assert result.entry.synced
    assert result.entry.location == "District 10, Ho Chi Minh City"
    assert result.notice is None
    assert len(remote.called("save_time_punch")) == 1
    assert storage.get_unsynced_time_punches("t1") == []


def test_offline_clock_in_is_queued(storage, remote, staging):
    service = _service(storage, remote, staging, online=False, location_provider=FixedLocation())

    result = service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN)

    assert not result.entry.synced
    assert result.notice == NOTICE_SAVED_OFFLINE
    assert remote.called("save_time_punch") == []
    assert [p.id for p in storage.get_unsynced_time_punches("t1")] == [result.entry.id]


def test_remote_failure_while_online_keeps_punch_queued(storage, remote, staging):
    remote.offline = True
    service = _service(storage, remote, staging, location_provider=FixedLocation())

    result = service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_OUT)

    assert not result.entry.synced
    assert result.notice == NOTICE_SAVED_OFFLINE
    assert len(storage.get_unsynced_time_punches("t1")) == 1


def test_refused_punch_is_raised_and_not_kept(storage, remote, staging):
    remote.reject_all = True
    service = _service(storage, remote, staging, location_provider=FixedLocation())

    with pytest.raises(RemoteRejectedError):
        service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN)

    assert storage.get_unsynced_time_punches("t1") == []
    # the lock is free again
    remote.reject_all = False
    assert service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN).entry.synced


def test_unsynced_punch_that_cannot_be_stored_raises(storage, remote, staging):
    def broken(punch):
        raise StorageError("disk full")

    storage.save_time_punch = broken
    service = _service(storage, remote, staging, online=False)

    with pytest.raises(StorageError):
        service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN)


def test_location_timeout_does_not_block_the_punch(storage, remote, staging):
    provider = BlockingLocation()
    service = _service(storage, remote, staging, location_provider=provider)

    started = time.monotonic()
    result = service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN)
    provider.release.set()

    assert time.monotonic() - started < 3
    assert result.entry.location == LOCATION_UNAVAILABLE
    assert result.notice


def test_second_clock_while_processing_is_rejected(storage, remote, staging):
    provider = BlockingLocation()
    service = _service(storage, remote, staging, location_provider=provider)
    service._location_timeout = 5

    worker = threading.Thread(
        target=service.clock,
        kwargs={"tenant_id": "t1", "user_id": "u1", "punch_type": PunchType.CLOCK_IN},
    )
    worker.start()
    assert provider.entered.wait(2)
    try:
        assert service.is_processing
        with pytest.raises(ConflictError):
            service.clock(tenant_id="t1", user_id="u1", punch_type=PunchType.CLOCK_IN)
    finally:
        provider.release.set()
        worker.join(5)

    assert not service.is_processing


def test_current_status_follows_latest_punch(storage, remote, staging):
    remote.time_entries = [
        {"id": "s1", "employee_id": "u1", "type": "clock_in", "timestamp": "2025-03-10T07:00:00"},
    ]
    service = _service(storage, remote, staging)

    status = service.current_status(tenant_id="t1", user_id="u1")

    assert status["clocked_in"] is True
    assert status["status"] == "Working"
    assert status["last_punch"] == "2025-03-10T07:00:00"
