from __future__ import annotations

from flask import Flask, request, session

from ..common.datetime_utils import to_iso, today_local
from ..common.http import api_errors, date_arg, identity, json_body, login_required, ok
from ..container import Container
from ..core.exceptions import ValidationError
from ..remote.adapters import adjustment_to_wire
from .model import AdjustmentDraft, TimelineEntry


def _drafts_from(data: dict) -> list[AdjustmentDraft]:
    raw = data.get("drafts") or []
    if not isinstance(raw, list):
        raise ValidationError("drafts must be a list", field="drafts")
    drafts = []
    for i, item in enumerate(raw):
        item = item or {}
        draft_id = str(item.get("id") or f"draft-{i}")
        try:
            sequence = int(item.get("sequence", i))
        except (TypeError, ValueError):
            raise ValidationError("sequence must be a whole number", field=f"{draft_id}.sequence")
        drafts.append(
            AdjustmentDraft(
                id=draft_id,
                sequence=sequence,
                time=str(item.get("time") or ""),
                reason=str(item.get("reason") or ""),
                document=item.get("document"),
            )
        )
    return drafts


def _timeline_row(t: TimelineEntry) -> dict:
    return {
        "timestamp": None if t.placeholder else to_iso(t.timestamp),
        "is_new": t.is_new,
        "inferred_type": t.inferred_type.value,
        "entry_id": t.entry_id,
        "draft_id": t.draft_id,
        "recorded_type": t.recorded_type.value if t.recorded_type else None,
        "placeholder": t.placeholder,
    }


def register(app: Flask, container: Container) -> None:
    service = container.adjustment_service

    @app.route("/api/adjustments/timeline", methods=["POST"], endpoint="api_adjustments_timeline")
    @login_required
    @api_errors
    def timeline():
        data = json_body()
        tenant_id, user_id = identity()
        target = date_arg(data.get("date"), "date")
        rows = service.timeline(tenant_id=tenant_id, user_id=user_id, target_date=target, drafts=_drafts_from(data))
        return ok([_timeline_row(t) for t in rows])

    @app.route("/api/adjustments", methods=["GET"], endpoint="api_adjustments_list")
    @login_required
    @api_errors
    def list_requests():
        tenant_id, user_id = identity()
        view = service.list_requests(tenant_id=tenant_id, user_id=user_id)
        status = (request.args.get("status") or "").strip().lower()
        records = [r for r in view.records if not status or r.status.value.lower() == status]
        return ok(
            {"requests": [adjustment_to_wire(r) for r in records], "source": view.source.value},
            notice=view.notice,
        )

    @app.route("/api/adjustments", methods=["POST"], endpoint="api_adjustments_submit")
    @login_required
    @api_errors
    def submit():
        data = json_body()
        tenant_id, user_id = identity()
        result = service.submit(
            tenant_id=tenant_id,
            user_id=user_id,
            target_date=date_arg(data.get("date"), "date"),
            drafts=_drafts_from(data),
            employee_name=session.get("name"),
        )
        return ok(
            adjustment_to_wire(result.record),
            message="Time adjustment request submitted",
            notice=result.notice,
            status=201,
        )

    @app.route("/api/adjustments/<request_id>/cancel", methods=["POST"], endpoint="api_adjustments_cancel")
    @login_required
    @api_errors
    def cancel(request_id: str):
        tenant_id, user_id = identity()
        cancelled = service.cancel(tenant_id=tenant_id, user_id=user_id, request_id=request_id)
        return ok({"id": cancelled.id}, message="Adjustment request cancelled")

    @app.route("/api/adjustments/check-day", methods=["GET"], endpoint="api_adjustments_check_day")
    @login_required
    @api_errors
    def check_day():
        tenant_id, user_id = identity()
        target = date_arg(request.args.get("date"), "date", default=today_local())
        view = service.list_requests(tenant_id=tenant_id, user_id=user_id)
        service.ensure_no_open_request(view.records, target)
        return ok({"date": target.isoformat(), "available": True})
