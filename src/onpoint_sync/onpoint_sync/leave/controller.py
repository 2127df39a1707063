from __future__ import annotations

from flask import Flask, request, session

from ..common.datetime_utils import today_local
from ..common.http import api_errors, date_arg, identity, json_body, login_required, ok
from ..container import Container
from ..core.enums import LeaveType
from ..remote.adapters import leave_balance_to_wire, leave_to_wire, parse_leave_type
from .calculator import (
    date_clicked,
    dates_changed,
    default_leave_type,
    is_eligible_for_annual_leave,
    leave_type_changed,
    num_days_changed,
)
from .model import DayCountState


def _state_from(data: dict) -> DayCountState:
    return DayCountState(
        leave_type=parse_leave_type(data.get("leave_type") or LeaveType.ANNUAL.value),
        start_date=date_arg(data["start_date"], "start_date") if data.get("start_date") else None,
        end_date=date_arg(data["end_date"], "end_date") if data.get("end_date") else None,
        num_days=str(data.get("num_days") or ""),
    )


def _state_row(state: DayCountState) -> dict:
    return {
        "leave_type": state.leave_type.value,
        "start_date": state.start_date.isoformat() if state.start_date else None,
        "end_date": state.end_date.isoformat() if state.end_date else None,
        "num_days": state.num_days,
        "notice": state.notice,
    }


def register(app: Flask, container: Container) -> None:
    service = container.leave_service

    @app.route("/api/leave/requests", methods=["GET"], endpoint="api_leave_list")
    @login_required
    @api_errors
    def list_requests():
        tenant_id, user_id = identity()
        view = service.list_requests(tenant_id=tenant_id, user_id=user_id)
        rows = [{**leave_to_wire(r), "synced": r.synced} for r in view.records]
        rows.sort(key=lambda r: r["start_date"] or "", reverse=True)
        return ok({"requests": rows, "source": view.source.value}, notice=view.notice)

    @app.route("/api/leave/requests", methods=["POST"], endpoint="api_leave_create")
    @login_required
    @api_errors
    def create():
        data = json_body()
        tenant_id, user_id = identity()
        result = service.create(
            tenant_id=tenant_id,
            user_id=user_id,
            leave_type=parse_leave_type(data.get("leave_type")),
            start_date=date_arg(data.get("start_date"), "start_date"),
            end_date=date_arg(data.get("end_date"), "end_date"),
            reason=data.get("reason") or "",
            employee_name=session.get("name"),
            hire_date=session.get("hire_date"),
        )
        return ok(leave_to_wire(result.record), message="Leave request submitted", notice=result.notice, status=201)

    @app.route("/api/leave/requests/<request_id>", methods=["PUT"], endpoint="api_leave_update")
    @login_required
    @api_errors
    def update(request_id: str):
        data = json_body()
        tenant_id, user_id = identity()
        result = service.update(
            tenant_id=tenant_id,
            user_id=user_id,
            request_id=request_id,
            leave_type=parse_leave_type(data.get("leave_type")),
            start_date=date_arg(data.get("start_date"), "start_date"),
            end_date=date_arg(data.get("end_date"), "end_date"),
            reason=data.get("reason") or "",
            hire_date=session.get("hire_date"),
        )
        return ok(leave_to_wire(result.record), message="Leave request updated", notice=result.notice)

    @app.route("/api/leave/requests/<request_id>/cancel", methods=["POST"], endpoint="api_leave_cancel")
    @login_required
    @api_errors
    def cancel(request_id: str):
        tenant_id, user_id = identity()
        result = service.cancel(tenant_id=tenant_id, user_id=user_id, request_id=request_id)
        return ok(leave_to_wire(result.record), message="Leave request cancelled", notice=result.notice)

    @app.route("/api/leave/balances", methods=["GET"], endpoint="api_leave_balances")
    @login_required
    @api_errors
    def balances():
        tenant_id, user_id = identity()
        balance, source, notice = service.balances(tenant_id=tenant_id, user_id=user_id)
        data = {
            **leave_balance_to_wire(balance),
            "days_used": service.days_used(tenant_id=tenant_id, user_id=user_id),
            "source": source.value,
        }
        return ok(data, notice=notice)

    @app.route("/api/leave/day-count", methods=["POST"], endpoint="api_leave_day_count")
    @login_required
    @api_errors
    def day_count():
        """Keep the leave form consistent after one field changed.

        ``changed`` is ``dates``, ``num_days``, ``leave_type`` or ``click``.
        """

        data = json_body()
        today = today_local()
        eligible = is_eligible_for_annual_leave(session.get("hire_date"), today=today)
        state = _state_from(data)
        state = DayCountState(
            leave_type=default_leave_type(state.leave_type, eligible_for_annual=eligible),
            start_date=state.start_date,
            end_date=state.end_date,
            num_days=state.num_days,
        )

        changed = (data.get("changed") or request.args.get("changed") or "dates").lower()
        if changed == "num_days":
            state = num_days_changed(state, str(data.get("num_days") or ""), today=today)
        elif changed == "leave_type":
            state = leave_type_changed(state, state.leave_type)
        elif changed == "click":
            state = date_clicked(state, date_arg(data.get("clicked"), "clicked"))
        else:
            state = dates_changed(state, state.start_date, state.end_date)

        return ok({**_state_row(state), "eligible_for_annual": eligible})
