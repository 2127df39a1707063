"""Wire <-> domain mapping, one pair of functions per entity.

The remote API speaks snake_case JSON with ISO-8601 timestamps and
``YYYY-MM-DD`` dates. Nothing outside this module should know a wire field
name. The same wire shape is what the local read cache and the adjustment
staging store persist, so a cached payload always round-trips through here.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime, to_iso
from ..core.enums import LeaveType, PunchType, RequestStatus
from ..core.exceptions import ValidationError
from ..adjustments.model import AdjustmentRequest
from ..expenses.model import ExpenseRequest
from ..leave.model import LeaveBalance, LeaveRequest
from ..timeclock.model import TimeEntry


def parse_status(value: Any, *, default: RequestStatus = RequestStatus.PENDING) -> RequestStatus:
    if isinstance(value, RequestStatus):
        return value
    v = str(value or "").strip().lower()
    if not v:
        return default
    for status in RequestStatus:
        if status.value.lower() == v or status.name.lower() == v:
            return status
    raise ValidationError(f"Unknown request status: {value!r}", field="status")


def parse_punch_type(value: Any) -> PunchType:
    if isinstance(value, PunchType):
        return value
    v = str(value or "").strip().lower().replace(" ", "_")
    for punch_type in PunchType:
        if punch_type.value == v or punch_type.name.lower() == v:
            return punch_type
    raise ValidationError(f"Unknown punch type: {value!r}", field="type")


def parse_leave_type(value: Any) -> LeaveType:
    if isinstance(value, LeaveType):
        return value
    v = str(value or "").strip().lower()
    for leave_type in LeaveType:
        if v in {leave_type.value.lower(), leave_type.name.lower()}:
            return leave_type
    raise ValidationError(f"Unknown leave type: {value!r}", field="leave_type")


def _date_or_none(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value)[:10])


def _date_iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


# Time punches

def time_entry_from_wire(item: dict, *, tenant_id: str = "") -> TimeEntry:
    timestamp = parse_iso_datetime(item.get("timestamp"))
    if timestamp is None:
        raise ValidationError("Time entry without timestamp", field="timestamp")
    return TimeEntry(
        id=str(item["id"]),
        user_id=str(item.get("employee_id") or item.get("user_id") or ""),
        tenant_id=str(item.get("tenant_id") or tenant_id),
        type=parse_punch_type(item.get("type")),
        timestamp=timestamp,
        location=item.get("location"),
        photo_url=item.get("photo_url"),
        synced=bool(item.get("synced", True)),
        created_at=parse_iso_datetime(item.get("created_at")),
    )


def time_entry_to_wire(entry: TimeEntry) -> dict:
    """Payload for ``POST /api/time-punches``.

    ``client_id`` carries the local id so the server can drop a replay.
    """

    return {
        "client_id": entry.id,
        "employee_id": entry.user_id,
        "tenant_id": entry.tenant_id,
        "type": entry.type.value,
        "timestamp": to_iso(entry.timestamp),
        "location": entry.location,
        "photo_url": entry.photo_url,
    }


# Adjustment requests

def adjustment_from_wire(item: dict) -> AdjustmentRequest:
    requested_in = parse_iso_datetime(item.get("requested_clock_in"))
    requested_out = parse_iso_datetime(item.get("requested_clock_out"))
    original_in = parse_iso_datetime(item.get("clock_in"))
    day = (
        _date_or_none(item.get("requested_date"))
        or (requested_in.date() if requested_in else None)
        or (requested_out.date() if requested_out else None)
        or (original_in.date() if original_in else None)
    )
    if day is None:
        raise ValidationError("Adjustment request without a date", field="requested_date")

    return AdjustmentRequest(
        id=str(item["id"]),
        user_id=str(item.get("employee_id") or ""),
        employee_name=item.get("employee_name"),
        date=day,
        original_clock_in=original_in,
        original_clock_out=parse_iso_datetime(item.get("clock_out")),
        requested_clock_in=requested_in,
        requested_clock_out=requested_out,
        requested_clock_in_2=parse_iso_datetime(item.get("requested_clock_in_2")),
        requested_clock_out_2=parse_iso_datetime(item.get("requested_clock_out_2")),
        reason=item.get("adjustment_reason") or "",
        status=parse_status(item.get("adjustment_status")),
        reviewed_by=item.get("adjustment_reviewed_by"),
        reviewed_at=parse_iso_datetime(item.get("adjustment_reviewed_at")),
    )


def adjustment_to_wire(req: AdjustmentRequest) -> dict:
    return {
        "id": req.id,
        "employee_id": req.user_id,
        "employee_name": req.employee_name,
        "requested_date": req.date.isoformat(),
        "clock_in": to_iso(req.original_clock_in),
        "clock_out": to_iso(req.original_clock_out),
        "requested_clock_in": to_iso(req.requested_clock_in),
        "requested_clock_out": to_iso(req.requested_clock_out),
        "requested_clock_in_2": to_iso(req.requested_clock_in_2),
        "requested_clock_out_2": to_iso(req.requested_clock_out_2),
        "adjustment_reason": req.reason,
        "adjustment_status": req.status.value,
        "adjustment_reviewed_by": req.reviewed_by,
        "adjustment_reviewed_at": to_iso(req.reviewed_at),
    }


def adjustment_create_payload(req: AdjustmentRequest) -> dict:
    """Create body: no server id yet, the provisional id travels as ``client_id``."""
    payload = adjustment_to_wire(req)
    payload.pop("id", None)
    payload["client_id"] = req.id
    return payload


# Leave

def leave_from_wire(item: dict, *, tenant_id: str = "") -> LeaveRequest:
    start = _date_or_none(item.get("start_date"))
    end = _date_or_none(item.get("end_date"))
    if start is None or end is None:
        raise ValidationError("Leave request without a date range", field="start_date")
    return LeaveRequest(
        id=str(item["id"]),
        user_id=str(item.get("employee_id") or item.get("user_id") or ""),
        tenant_id=str(item.get("tenant_id") or tenant_id),
        employee_name=item.get("employee_name"),
        leave_type=parse_leave_type(item.get("leave_type")),
        start_date=start,
        end_date=end,
        reason=item.get("reason") or "",
        status=parse_status(item.get("status")),
        synced=bool(item.get("synced", True)),
        created_at=parse_iso_datetime(item.get("created_at")),
    )


def leave_to_wire(req: LeaveRequest) -> dict:
    return {
        "id": req.id,
        "user_id": req.user_id,
        "employee_name": req.employee_name,
        "tenant_id": req.tenant_id,
        "leave_type": req.leave_type.value,
        "start_date": _date_iso(req.start_date),
        "end_date": _date_iso(req.end_date),
        "reason": req.reason,
        "status": req.status.value,
    }


def leave_balance_from_wire(item: Optional[dict], *, user_id: str) -> LeaveBalance:
    item = item or {}
    return LeaveBalance(
        user_id=str(item.get("employee_id") or user_id),
        annual=float(item.get("annual") or item.get("annual_leave") or 0),
        maternity=float(item.get("maternity") or item.get("maternity_leave") or 0),
        sick=float(item.get("sick") or item.get("sick_leave") or 0),
    )


def leave_balance_to_wire(balance: LeaveBalance) -> dict:
    return {
        "employee_id": balance.user_id,
        "annual": balance.annual,
        "maternity": balance.maternity,
        "sick": balance.sick,
    }


# Expenses

def expense_from_wire(item: dict, *, tenant_id: str = "") -> ExpenseRequest:
    expense_date = _date_or_none(item.get("expense_date") or item.get("date"))
    if expense_date is None:
        raise ValidationError("Expense without a date", field="expense_date")
    return ExpenseRequest(
        id=str(item["id"]),
        user_id=str(item.get("employee_id") or ""),
        tenant_id=str(item.get("tenant_id") or tenant_id),
        employee_name=item.get("employee_name"),
        amount=float(item.get("amount") or 0),
        category=item.get("category"),
        description=item.get("description") or "",
        expense_date=expense_date,
        receipt_url=item.get("receipt_url"),
        status=parse_status(item.get("status")),
        synced=bool(item.get("synced", True)),
        created_at=parse_iso_datetime(item.get("created_at")),
    )


def expense_to_wire(expense: ExpenseRequest) -> dict:
    return {
        "id": expense.id,
        "employee_id": expense.user_id,
        "employee_name": expense.employee_name,
        "tenant_id": expense.tenant_id,
        "amount": expense.amount,
        "category": expense.category,
        "description": expense.description,
        "expense_date": _date_iso(expense.expense_date),
        "receipt_url": expense.receipt_url,
        "status": expense.status.value,
    }
