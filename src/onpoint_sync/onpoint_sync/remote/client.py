from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from ..core.exceptions import RemoteRejectedError, RemoteUnavailableError

logger = logging.getLogger(__name__)

# 400 responses carrying one of these won't succeed on replay.
NON_RETRYABLE_MESSAGES = (
    "Tenant ID and User ID required",
    "User not found",
    "Missing required fields",
    "Invalid",
    "required",
)


class RemoteApi(Protocol):
    """System of record. Every call is tenant scoped and returns wire dicts."""

    def get_time_entries(self, tenant_id: str, user_id: str, day: Optional[str] = None) -> list[dict]:
        raise NotImplementedError

    def save_time_punch(self, tenant_id: str, payload: dict) -> dict:
        raise NotImplementedError

    def create_time_adjustment_request(self, tenant_id: str, payload: dict) -> dict:
        raise NotImplementedError

    def get_time_adjustment_requests(
        self, tenant_id: str, *, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[dict]:
        raise NotImplementedError

    def get_leave_requests(
        self, tenant_id: str, *, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[dict]:
        raise NotImplementedError

    def create_leave_request(self, tenant_id: str, payload: dict) -> dict:
        raise NotImplementedError

    def update_leave_request(self, tenant_id: str, request_id: str, payload: dict) -> dict:
        raise NotImplementedError

    def get_leave_balances(self, tenant_id: str, user_id: str) -> dict:
        raise NotImplementedError

    def get_expense_claims(
        self, tenant_id: str, *, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[dict]:
        raise NotImplementedError

    def create_expense_claim(self, tenant_id: str, payload: dict) -> dict:
        raise NotImplementedError

    def update_expense_claim(self, tenant_id: str, expense_id: str, payload: dict) -> dict:
        raise NotImplementedError

    def send(self, tenant_id: str, method: str, path: str, body: Optional[dict] = None) -> Any:
        raise NotImplementedError


class HttpRemoteApi(RemoteApi):
    """httpx-backed client for the HR REST API.

    Responses come wrapped as ``{"success": bool, "data": ..., "error": str}``.
    Transport failures and 5xx map to ``RemoteUnavailableError``; other
    refusals map to ``RemoteRejectedError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        timeout = httpx.Timeout(timeout=float(timeout_seconds), connect=5.0)
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Content-Type": "application/json", **(headers or {})},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpRemoteApi":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ===== Time =====

    def get_time_entries(self, tenant_id: str, user_id: str, day: Optional[str] = None) -> list[dict]:
        params = {"userId": user_id}
        if day:
            params["date"] = day
        return list(self._request(tenant_id, "GET", "/api/time-entries", params=params) or [])

    def save_time_punch(self, tenant_id: str, payload: dict) -> dict:
        return self._request(
            tenant_id,
            "POST",
            "/api/time-punches",
            json=payload,
            idempotency_key=payload.get("client_id"),
        ) or {}

    def create_time_adjustment_request(self, tenant_id: str, payload: dict) -> dict:
        return self._request(tenant_id, "POST", "/api/time-adjustments", json=payload) or {}

    def get_time_adjustment_requests(
        self, tenant_id: str, *, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[dict]:
        params = _filters(userId=user_id, status=status)
        return list(self._request(tenant_id, "GET", "/api/time-adjustments", params=params) or [])

    # ===== Leave =====

    def get_leave_requests(
        self, tenant_id: str, *, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[dict]:
        params = _filters(userId=user_id, status=status)
        return list(self._request(tenant_id, "GET", "/api/leave/requests", params=params) or [])

    def create_leave_request(self, tenant_id: str, payload: dict) -> dict:
        return self._request(tenant_id, "POST", "/api/leave/requests", json=payload) or {}

    def update_leave_request(self, tenant_id: str, request_id: str, payload: dict) -> dict:
        return self._request(tenant_id, "PUT", f"/api/leave/requests/{request_id}", json=payload) or {}

    def get_leave_balances(self, tenant_id: str, user_id: str) -> dict:
        return self._request(tenant_id, "GET", f"/api/leave/balances/{user_id}") or {}

    # ===== Expenses =====

    def get_expense_claims(
        self, tenant_id: str, *, user_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[dict]:
        params = _filters(employee_id=user_id, status=status)
        return list(self._request(tenant_id, "GET", "/api/expenses", params=params) or [])

    def create_expense_claim(self, tenant_id: str, payload: dict) -> dict:
        return self._request(tenant_id, "POST", "/api/expenses", json=payload) or {}

    def update_expense_claim(self, tenant_id: str, expense_id: str, payload: dict) -> dict:
        return self._request(tenant_id, "PUT", f"/api/expenses/{expense_id}", json=payload) or {}

    # ===== Generic =====

    def send(self, tenant_id: str, method: str, path: str, body: Optional[dict] = None) -> Any:
        return self._request(tenant_id, method.upper(), path, json=body)

    def _request(
        self,
        tenant_id: str,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        headers = {"x-tenant-id": str(tenant_id)}
        if idempotency_key:
            headers["Idempotency-Key"] = str(idempotency_key)

        try:
            resp = self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RemoteUnavailableError(f"Network error: {e}") from e

        body = _json_or_none(resp)
        message = ""
        if isinstance(body, dict):
            message = str(body.get("error") or body.get("message") or "")

        if resp.status_code >= 500:
            raise RemoteUnavailableError(message or f"Server error {resp.status_code}")
        if resp.status_code >= 400:
            retryable = not (resp.status_code == 400 and _is_validation_message(message))
            raise RemoteRejectedError(
                message or f"Request rejected ({resp.status_code})",
                status_code=resp.status_code,
                retryable=retryable,
            )

        if isinstance(body, dict) and "success" in body:
            if not body.get("success"):
                raise RemoteRejectedError(message or "Request failed", status_code=resp.status_code, retryable=False)
            return body.get("data")
        return body


def _filters(**kwargs: Optional[str]) -> dict:
    return {k: v for k, v in kwargs.items() if v is not None}


def _json_or_none(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def _is_validation_message(message: str) -> bool:
    return any(token in message for token in NON_RETRYABLE_MESSAGES)
