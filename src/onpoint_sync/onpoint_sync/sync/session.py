from __future__ import annotations

import logging
from typing import Optional

from ..common.scheduler import PollingTask
from ..core.constants import DEFAULT_POLL_INTERVAL_SECONDS
from .connectivity import ConnectivityMonitor
from .engine import ReconciliationEngine
from .model import DrainReport, MergedView

logger = logging.getLogger(__name__)


class SyncSession:
    """Background sync for one signed-in ``(tenant, user)``.

    While open it refreshes the merged adjustment view on a fixed interval and
    drains the local queue whenever connectivity comes back. ``close()`` stops
    the polling thread and detaches from the monitor.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        connectivity: ConnectivityMonitor,
        *,
        tenant_id: str,
        user_id: str,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self._engine = engine
        self._connectivity = connectivity
        self.tenant_id = str(tenant_id)
        self.user_id = str(user_id)
        self._task = PollingTask(self.refresh, interval_seconds=interval_seconds, name=f"sync-{self.user_id}")
        self.last_view: Optional[MergedView] = None
        self.last_report: Optional[DrainReport] = None

    @property
    def running(self) -> bool:
        return self._task.running

    def open(self, *, run_immediately: bool = True) -> None:
        self._connectivity.add_listener(self.drain)
        self._task.start(run_immediately=run_immediately)

    def close(self) -> None:
        self._connectivity.remove_listener(self.drain)
        self._task.stop()

    def drain(self) -> DrainReport:
        self.last_report = self._engine.drain(self.tenant_id, self.user_id)
        return self.last_report

    def refresh(self) -> MergedView:
        self.last_view = self._engine.load_adjustments(self.tenant_id, self.user_id)
        logger.debug(
            "Refreshed adjustments for %s/%s (%s, %d records)",
            self.tenant_id,
            self.user_id,
            self.last_view.source.value,
            len(self.last_view.records),
        )
        return self.last_view
