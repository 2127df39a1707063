from __future__ import annotations

from flask import Flask, session

from ..common.http import api_errors, date_arg, identity, json_body, login_required, ok
from ..container import Container
from ..remote.adapters import expense_to_wire


def register(app: Flask, container: Container) -> None:
    service = container.expense_service

    @app.route("/api/expenses", methods=["GET"], endpoint="api_expenses_list")
    @login_required
    @api_errors
    def list_expenses():
        tenant_id, user_id = identity()
        view = service.list_expenses(tenant_id=tenant_id, user_id=user_id)
        rows = [{**expense_to_wire(e), "synced": e.synced} for e in view.records]
        return ok({"expenses": rows, "source": view.source.value}, notice=view.notice)

    @app.route("/api/expenses", methods=["POST"], endpoint="api_expenses_create")
    @login_required
    @api_errors
    def create():
        data = json_body()
        tenant_id, user_id = identity()
        result = service.create(
            tenant_id=tenant_id,
            user_id=user_id,
            amount=data.get("amount"),
            description=data.get("description") or "",
            expense_date=date_arg(data.get("expense_date"), "expense_date"),
            category=data.get("category"),
            receipt_url=data.get("receipt_url"),
            employee_name=session.get("name"),
        )
        return ok(expense_to_wire(result.record), message="Expense claim submitted", notice=result.notice, status=201)

    @app.route("/api/expenses/<expense_id>", methods=["PUT"], endpoint="api_expenses_update")
    @login_required
    @api_errors
    def update(expense_id: str):
        data = json_body()
        tenant_id, user_id = identity()
        result = service.update(
            tenant_id=tenant_id,
            user_id=user_id,
            expense_id=expense_id,
            amount=data.get("amount"),
            description=data.get("description") or "",
            expense_date=date_arg(data.get("expense_date"), "expense_date"),
            category=data.get("category"),
        )
        return ok(expense_to_wire(result.record), message="Expense claim updated", notice=result.notice)

    @app.route("/api/expenses/<expense_id>/cancel", methods=["POST"], endpoint="api_expenses_cancel")
    @login_required
    @api_errors
    def cancel(expense_id: str):
        tenant_id, user_id = identity()
        result = service.cancel(tenant_id=tenant_id, user_id=user_id, expense_id=expense_id)
        return ok(expense_to_wire(result.record), message="Expense claim cancelled", notice=result.notice)
