from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.ids import new_local_id
from ..core.constants import GEOLOCATION_TIMEOUT_SECONDS
from ..core.enums import PunchType
from ..core.exceptions import ConflictError, RemoteError, StorageError, is_permanent_rejection
from ..remote.adapters import time_entry_to_wire
from ..remote.client import RemoteApi
from ..storage.repository import OfflineStorage
from ..sync.connectivity import ConnectivityMonitor
from ..sync.engine import ReconciliationEngine
from ..sync.model import MergedView
from .location import LocationProvider, acquire_location
from .model import ClockResult, TimeEntry

logger = logging.getLogger(__name__)

NOTICE_SAVED_OFFLINE = "Saved offline. It will sync when you're back online."


class ClockService:
    """Clock in/out, offline first.

    Online: the punch goes to the remote first and is kept locally as synced.
    Offline, or when the remote call fails: the punch is stored unsynced and
    the next drain delivers it.
    """

    def __init__(
        self,
        storage: OfflineStorage,
        remote: RemoteApi,
        engine: ReconciliationEngine,
        connectivity: ConnectivityMonitor,
        *,
        location_provider: Optional[LocationProvider] = None,
        location_timeout_seconds: float = GEOLOCATION_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._storage = storage
        self._remote = remote
        self._engine = engine
        self._connectivity = connectivity
        self._location_provider = location_provider
        self._location_timeout = float(location_timeout_seconds)
        self._clock = clock
        self._processing = threading.Lock()

    @property
    def is_processing(self) -> bool:
        return self._processing.locked()

    def clock(
        self,
        *,
        tenant_id: str,
        user_id: str,
        punch_type: PunchType,
        photo_url: Optional[str] = None,
    ) -> ClockResult:
        if not self._processing.acquire(blocking=False):
            raise ConflictError("A clock action is already in progress")
        try:
            located = acquire_location(self._location_provider, timeout_seconds=self._location_timeout)
            now = self._clock()
            entry = TimeEntry(
                id=new_local_id("te"),
                user_id=str(user_id),
                tenant_id=str(tenant_id),
                type=punch_type,
                timestamp=now,
                location=located.location,
                photo_url=photo_url,
                synced=False,
                created_at=now,
            )

            notice = located.notice
            if self._connectivity.online:
                try:
                    self._remote.save_time_punch(tenant_id, time_entry_to_wire(entry))
                    entry = entry.mark_synced()
                except RemoteError as e:
                    if is_permanent_rejection(e):
                        raise
                    logger.warning("Remote punch save failed, keeping it queued: %s", e)
                    notice = NOTICE_SAVED_OFFLINE
            else:
                notice = NOTICE_SAVED_OFFLINE

            try:
                self._storage.save_time_punch(entry)
            except StorageError:
                if not entry.synced:
                    raise
                logger.exception("Local copy of synced punch %s could not be saved", entry.id)

            logger.info("%s %s for user %s (synced=%s)", punch_type.value, entry.id, user_id, entry.synced)
            return ClockResult(entry=entry, notice=notice)
        finally:
            self._processing.release()

    def history(self, *, tenant_id: str, user_id: str, day: Optional[date] = None) -> MergedView[TimeEntry]:
        return self._engine.load_time_entries(tenant_id, user_id, day.isoformat() if day else None)

    def current_status(self, *, tenant_id: str, user_id: str) -> dict:
        """Clocked in when today's latest punch is a clock-in."""
        today = self._clock().date()
        view = self.history(tenant_id=tenant_id, user_id=user_id, day=today)
        latest = max(view.records, key=lambda e: e.timestamp, default=None)
        clocked_in = latest is not None and latest.type == PunchType.CLOCK_IN
        return {
            "clocked_in": clocked_in,
            "status": "Working" if clocked_in else "Clocked Out",
            "last_punch": latest.timestamp.isoformat() if latest else None,
            "source": view.source.value,
            "notice": view.notice,
        }
