from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .adjustments.mysql_staging_repository import MySQLAdjustmentStagingStore
from .adjustments.repository import AdjustmentStagingStore
from .adjustments.service import AdjustmentService
from .core.constants import (
    DEFAULT_CACHE_MAX_AGE_HOURS,
    DEFAULT_MAX_QUEUE_RETRIES,
    GEOLOCATION_TIMEOUT_SECONDS,
    REQUIRED_DAILY_MINUTES,
)
from .database.connection import DBConfig, DatabaseConnection
from .expenses.service import ExpenseService
from .leave.service import LeaveService
from .remote.client import HttpRemoteApi, RemoteApi
from .storage.mysql_offline_storage import MySQLOfflineStorage
from .storage.repository import OfflineStorage
from .sync.connectivity import ConnectivityMonitor
from .sync.engine import ReconciliationEngine
from .timeclock.location import LocationProvider
from .timeclock.service import ClockService
from .worktime.service import WorkSummaryService


@dataclass(frozen=True)
class Container:
    storage: OfflineStorage
    staging: AdjustmentStagingStore
    remote: RemoteApi
    connectivity: ConnectivityMonitor
    engine: ReconciliationEngine

    clock_service: ClockService
    adjustment_service: AdjustmentService
    leave_service: LeaveService
    expense_service: ExpenseService
    work_summary_service: WorkSummaryService

    poll_interval_seconds: float = 30.0


def wire_services(
    *,
    storage: OfflineStorage,
    staging: AdjustmentStagingStore,
    remote: RemoteApi,
    connectivity: Optional[ConnectivityMonitor] = None,
    location_provider: Optional[LocationProvider] = None,
    max_queue_retries: int = DEFAULT_MAX_QUEUE_RETRIES,
    required_daily_minutes: int = REQUIRED_DAILY_MINUTES,
    geolocation_timeout_seconds: float = GEOLOCATION_TIMEOUT_SECONDS,
    poll_interval_seconds: float = 30.0,
) -> Container:
    """Build services on top of already constructed adapters (tests pass fakes here)."""
    connectivity = connectivity or ConnectivityMonitor()
    engine = ReconciliationEngine(storage, remote, staging, max_queue_retries=max_queue_retries)

    return Container(
        storage=storage,
        staging=staging,
        remote=remote,
        connectivity=connectivity,
        engine=engine,
        clock_service=ClockService(
            storage,
            remote,
            engine,
            connectivity,
            location_provider=location_provider,
            location_timeout_seconds=geolocation_timeout_seconds,
        ),
        adjustment_service=AdjustmentService(staging, remote, engine, connectivity),
        leave_service=LeaveService(storage, remote, engine, connectivity),
        expense_service=ExpenseService(storage, remote, engine, connectivity),
        work_summary_service=WorkSummaryService(engine, required_minutes=required_daily_minutes),
        poll_interval_seconds=float(poll_interval_seconds),
    )


def build_container(
    *,
    db_config: dict,
    api_base_url: str,
    api_timeout_seconds: float = 10.0,
    cache_max_age_hours: float = DEFAULT_CACHE_MAX_AGE_HOURS,
    max_queue_retries: int = DEFAULT_MAX_QUEUE_RETRIES,
    required_daily_minutes: int = REQUIRED_DAILY_MINUTES,
    geolocation_timeout_seconds: float = GEOLOCATION_TIMEOUT_SECONDS,
    poll_interval_seconds: float = 30.0,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    storage = MySQLOfflineStorage(conn, cache_max_age=timedelta(hours=float(cache_max_age_hours)))
    staging = MySQLAdjustmentStagingStore(conn)
    remote = HttpRemoteApi(api_base_url, timeout_seconds=api_timeout_seconds)

    return wire_services(
        storage=storage,
        staging=staging,
        remote=remote,
        max_queue_retries=max_queue_retries,
        required_daily_minutes=required_daily_minutes,
        geolocation_timeout_seconds=geolocation_timeout_seconds,
        poll_interval_seconds=poll_interval_seconds,
    )
