import json

import httpx
import pytest

from src.onpoint_sync.onpoint_sync.core.exceptions import RemoteRejectedError, RemoteUnavailableError
from src.onpoint_sync.onpoint_sync.remote.client import HttpRemoteApi


def _client(handler):
    return HttpRemoteApi("http://hr.test/", transport=httpx.MockTransport(handler))


def test_tenant_header_and_envelope_unwrapping():
    seen = {}

    def handler(request):
        seen["tenant"] = request.headers.get("x-tenant-id")
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"success": True, "data": [{"id": "1"}]})

    with _client(handler) as api:
        data = api.get_time_adjustment_requests("t1", user_id="u1")

    assert data == [{"id": "1"}]
    assert seen == {"tenant": "t1", "params": {"userId": "u1"}}


def test_time_punch_sends_idempotency_key():
    seen = {}

    def handler(request):
        seen["key"] = request.headers.get("Idempotency-Key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"success": True, "data": {"id": "srv-1"}})

    with _client(handler) as api:
        created = api.save_time_punch("t1", {"client_id": "te-1", "type": "clock_in"})

    assert created == {"id": "srv-1"}
    assert seen["key"] == "te-1"
    assert seen["body"]["type"] == "clock_in"


def test_server_error_is_retryable_unavailable():
    with _client(lambda request: httpx.Response(503, json={"error": "maintenance"})) as api:
        with pytest.raises(RemoteUnavailableError):
            api.get_leave_requests("t1")


def test_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    with _client(handler) as api:
        with pytest.raises(RemoteUnavailableError):
            api.get_expense_claims("t1", user_id="u1")


def test_validation_rejection_is_not_retryable():
    with _client(lambda request: httpx.Response(400, json={"error": "Missing required fields"})) as api:
        with pytest.raises(RemoteRejectedError) as exc:
            api.create_leave_request("t1", {})

    assert exc.value.status_code == 400
    assert exc.value.retryable is False


def test_other_rejections_stay_retryable():
    with _client(lambda request: httpx.Response(409, json={"error": "busy"})) as api:
        with pytest.raises(RemoteRejectedError) as exc:
            api.send("t1", "put", "/api/expenses/1", {"amount": 3})

    assert exc.value.retryable is True


def test_unsuccessful_envelope_is_rejected():
    with _client(lambda request: httpx.Response(200, json={"success": False, "error": "User not found"})) as api:
        with pytest.raises(RemoteRejectedError):
            api.get_leave_balances("t1", "u1")
