from __future__ import annotations

from flask import Flask, request

from ..common.http import api_errors, date_arg, identity, json_body, login_required, ok
from ..container import Container
from ..core.enums import PunchType
from ..remote.adapters import parse_punch_type, time_entry_to_wire
from .model import TimeEntry


def _entry_row(entry: TimeEntry) -> dict:
    return {"id": entry.id, **time_entry_to_wire(entry), "synced": entry.synced}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/time/clock", methods=["POST"], endpoint="api_time_clock")
    @login_required
    @api_errors
    def clock():
        data = json_body()
        punch_type = parse_punch_type(data.get("type"))
        tenant_id, user_id = identity()
        result = container.clock_service.clock(
            tenant_id=tenant_id,
            user_id=user_id,
            punch_type=punch_type,
            photo_url=data.get("photo_url"),
        )
        message = "Clocked in" if punch_type == PunchType.CLOCK_IN else "Clocked out"
        return ok(_entry_row(result.entry), message=message, notice=result.notice, status=201)

    @app.route("/api/time/status", methods=["GET"], endpoint="api_time_status")
    @login_required
    @api_errors
    def status():
        tenant_id, user_id = identity()
        return ok(container.clock_service.current_status(tenant_id=tenant_id, user_id=user_id))

    @app.route("/api/time/history", methods=["GET"], endpoint="api_time_history")
    @login_required
    @api_errors
    def history():
        tenant_id, user_id = identity()
        summary = container.work_summary_service
        if request.args.get("today"):
            data = summary.today(tenant_id=tenant_id, user_id=user_id)
        else:
            data = summary.history(tenant_id=tenant_id, user_id=user_id)
        return ok(data, notice=data.get("notice"))

    @app.route("/api/time/entries", methods=["GET"], endpoint="api_time_entries")
    @login_required
    @api_errors
    def entries():
        tenant_id, user_id = identity()
        day = date_arg(request.args.get("date"), "date") if request.args.get("date") else None
        view = container.clock_service.history(tenant_id=tenant_id, user_id=user_id, day=day)
        rows = [_entry_row(e) for e in sorted(view.records, key=lambda e: e.timestamp, reverse=True)]
        return ok({"entries": rows, "source": view.source.value}, notice=view.notice)
