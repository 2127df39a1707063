from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.exceptions import AuthorizationError, ConflictError, DomainError, ValidationError, is_permanent_rejection
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "tenant_id" not in session:
            return jsonify({"success": False, "message": "Please sign in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def identity() -> tuple[str, str]:
    return str(session["tenant_id"]), str(session["user_id"])


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def date_arg(value: Optional[str], field: str, *, default: Optional[date] = None) -> date:
    if not value:
        if default is not None:
            return default
        raise ValidationError(f"{field} is required", field=field)
    try:
        return parse_iso_date(str(value)[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field} (YYYY-MM-DD)", field=field)


def ok(data: Any = None, *, message: str = "", notice: Optional[str] = None, status: int = 200):
    body: dict = {"success": True, "message": message, "data": data}
    if notice:
        body["notice"] = notice
    return jsonify(body), status


def error_response(e: Exception):
    if isinstance(e, ValidationError):
        return jsonify({"success": False, "message": str(e), "field": e.field}), 400
    if isinstance(e, ConflictError):
        return jsonify({"success": False, "message": str(e)}), 409
    if isinstance(e, AuthorizationError):
        return jsonify({"success": False, "message": str(e)}), 403
    if is_permanent_rejection(e):
        return jsonify({"success": False, "message": str(e)}), 400
    if isinstance(e, DomainError):
        logger.error("Request failed: %s", e)
        return jsonify({"success": False, "message": str(e)}), 500
    logger.exception("Unexpected error")
    return jsonify({"success": False, "message": "Unexpected error, please try again"}), 500


def api_errors(view):
    """Translate domain exceptions raised by a view into JSON error responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except Exception as e:
            return error_response(e)

    return wrapper
