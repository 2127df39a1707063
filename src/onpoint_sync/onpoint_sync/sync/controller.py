from __future__ import annotations

import logging
import threading

from flask import Flask, session

from ..common.http import api_errors, identity, json_body, login_required, ok
from ..common.validators import require_non_empty
from ..container import Container
from .session import SyncSession

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    # One background sync per signed-in (tenant, user).
    sessions: dict[tuple[str, str], SyncSession] = {}
    sessions_lock = threading.Lock()

    def _open_session(tenant_id: str, user_id: str) -> None:
        if not app.config.get("START_SYNC_POLLING", True):
            return
        with sessions_lock:
            if (tenant_id, user_id) in sessions:
                return
            sync = SyncSession(
                container.engine,
                container.connectivity,
                tenant_id=tenant_id,
                user_id=user_id,
                interval_seconds=container.poll_interval_seconds,
            )
            sessions[(tenant_id, user_id)] = sync
        sync.open()

    def _close_session(tenant_id: str, user_id: str) -> None:
        with sessions_lock:
            sync = sessions.pop((tenant_id, user_id), None)
        if sync is not None:
            sync.close()

    @app.route("/api/session", methods=["POST"], endpoint="api_session_open")
    @api_errors
    def open_session():
        data = json_body()
        tenant_id = require_non_empty(str(data.get("tenant_id") or ""), "tenant_id")
        user_id = require_non_empty(str(data.get("user_id") or ""), "user_id")
        session["tenant_id"] = tenant_id
        session["user_id"] = user_id
        session["name"] = data.get("name")
        session["hire_date"] = data.get("hire_date")
        _open_session(tenant_id, user_id)
        logger.info("Session opened for %s/%s", tenant_id, user_id)
        return ok({"tenant_id": tenant_id, "user_id": user_id}, message="Signed in")

    @app.route("/api/session", methods=["DELETE"], endpoint="api_session_close")
    @login_required
    @api_errors
    def close_session():
        tenant_id, user_id = identity()
        _close_session(tenant_id, user_id)
        session.clear()
        return ok(message="Signed out")

    @app.route("/api/sync/drain", methods=["POST"], endpoint="api_sync_drain")
    @login_required
    @api_errors
    def drain():
        tenant_id, user_id = identity()
        report = container.engine.drain(tenant_id, user_id)
        message = "Sync already in progress" if report.skipped else f"Synced {report.synced_count} item(s)"
        return ok(report.as_dict(), message=message)

    @app.route("/api/sync/status", methods=["GET"], endpoint="api_sync_status")
    @login_required
    @api_errors
    def status():
        tenant_id, user_id = identity()
        counts = container.storage.get_unsynced_count(tenant_id)
        with sessions_lock:
            sync = sessions.get((tenant_id, user_id))
        return ok(
            {
                "online": container.connectivity.online,
                "unsynced": counts.as_dict(),
                "polling": bool(sync and sync.running),
            }
        )

    @app.route("/api/sync/connectivity", methods=["POST"], endpoint="api_sync_connectivity")
    @login_required
    @api_errors
    def connectivity():
        data = json_body()
        tenant_id, user_id = identity()
        reconnected = container.connectivity.set_online(bool(data.get("online")))

        with sessions_lock:
            has_session = (tenant_id, user_id) in sessions
        report = None
        if reconnected and not has_session:
            # No background session listening: drain for the caller directly.
            report = container.engine.drain(tenant_id, user_id).as_dict()
        return ok({"online": container.connectivity.online, "reconnected": reconnected, "drain": report})
