from __future__ import annotations

from copy import deepcopy

import pytest

from src.onpoint_sync.onpoint_sync.core.enums import QueueStatus
from src.onpoint_sync.onpoint_sync.core.exceptions import RemoteRejectedError, RemoteUnavailableError
from src.onpoint_sync.onpoint_sync.storage.model import UnsyncedCount
from src.onpoint_sync.onpoint_sync.storage.repository import cache_key


class FakeStorage:
    """In-memory OfflineStorage; dicts keep insertion order like the seq column."""

    def __init__(self):
        self.punches: dict = {}
        self.leaves: dict = {}
        self.expenses: dict = {}
        self.cache: dict = {}
        self.queue: dict = {}

    # punches
    def save_time_punch(self, punch):
        self.punches[punch.id] = punch

    def get_time_punches(self, tenant_id, user_id):
        return [p for p in self.punches.values() if p.tenant_id == tenant_id and p.user_id == user_id]

    def get_unsynced_time_punches(self, tenant_id):
        return [p for p in self.punches.values() if p.tenant_id == tenant_id and not p.synced]

    def mark_time_punch_synced(self, punch_id):
        if punch_id in self.punches:
            self.punches[punch_id] = self.punches[punch_id].mark_synced()

    def delete_time_punch(self, punch_id):
        self.punches.pop(punch_id, None)

    def clear_time_punches(self, tenant_id, user_id):
        ids = [p.id for p in self.get_time_punches(tenant_id, user_id)]
        for i in ids:
            del self.punches[i]
        return len(ids)

    # leave
    def save_leave_request(self, request):
        self.leaves[request.id] = request

    def get_leave_requests_by_user(self, tenant_id, user_id):
        return [r for r in self.leaves.values() if r.tenant_id == tenant_id and r.user_id == user_id]

    def get_unsynced_leave_requests(self, tenant_id):
        return [r for r in self.leaves.values() if r.tenant_id == tenant_id and not r.synced]

    def mark_leave_request_synced(self, request_id):
        self.leaves[request_id] = self.leaves[request_id].mark_synced()

    def delete_leave_request(self, request_id):
        self.leaves.pop(request_id, None)

    # expenses
    def save_expense(self, expense):
        self.expenses[expense.id] = expense

    def get_expenses_by_user(self, tenant_id, user_id):
        return [e for e in self.expenses.values() if e.tenant_id == tenant_id and e.user_id == user_id]

    def get_unsynced_expenses(self, tenant_id):
        return [e for e in self.expenses.values() if e.tenant_id == tenant_id and not e.synced]

    def mark_expense_synced(self, expense_id):
        self.expenses[expense_id] = self.expenses[expense_id].mark_synced()

    def delete_expense(self, expense_id):
        self.expenses.pop(expense_id, None)

    # cache
    def cache_data(self, type_, data, tenant_id, user_id=None):
        self.cache[cache_key(type_, user_id)] = (tenant_id, deepcopy(data))

    def get_cached_data(self, type_, tenant_id, user_id=None):
        hit = self.cache.get(cache_key(type_, user_id))
        if not hit or hit[0] != tenant_id:
            return None
        return deepcopy(hit[1])

    # queue
    def enqueue_request(self, entry):
        self.queue[entry.id] = entry

    def get_queued_requests(self, tenant_id=None):
        return [
            q
            for q in self.queue.values()
            if q.status != QueueStatus.DONE and (tenant_id is None or q.tenant_id == tenant_id)
        ]

    def update_queued_request(self, entry):
        self.queue[entry.id] = entry

    def get_unsynced_count(self, tenant_id):
        return UnsyncedCount(
            time_punches=len(self.get_unsynced_time_punches(tenant_id)),
            leave_requests=len(self.get_unsynced_leave_requests(tenant_id)),
            expenses=len(self.get_unsynced_expenses(tenant_id)),
        )

    def clear_tenant_data(self, tenant_id):
        for table in (self.punches, self.leaves, self.expenses, self.queue):
            for k in [k for k, v in table.items() if v.tenant_id == tenant_id]:
                del table[k]
        for k in [k for k, v in self.cache.items() if v[0] == tenant_id]:
            del self.cache[k]


class FakeStaging:
    def __init__(self):
        self.data: dict = {}

    def load(self, tenant_id, user_id):
        return list(self.data.get((tenant_id, user_id), []))

    def save_all(self, tenant_id, user_id, requests):
        self.data[(tenant_id, user_id)] = list(requests)

    def clear(self, tenant_id, user_id):
        self.data.pop((tenant_id, user_id), None)


class FakeRemote:
    """RemoteApi double.

    ``offline`` makes every call raise RemoteUnavailableError. ``fail_ids``
    makes a create fail for payloads whose client id / id is listed;
    ``reject_ids`` (or ``reject_all``) makes the server refuse it for good.
    """

    def __init__(self):
        self.offline = False
        self.fail_ids: set = set()
        self.reject_ids: set = set()
        self.reject_all = False
        self.time_entries: list[dict] = []
        self.adjustments: list[dict] = []
        self.leave_requests: list[dict] = []
        self.expenses: list[dict] = []
        self.balances: dict = {}
        self.calls: list[tuple] = []
        self._next_id = 1

    def _guard(self, name, *args):
        self.calls.append((name,) + args)
        if self.offline:
            raise RemoteUnavailableError("offline")

    def _check_fail(self, key):
        if key in self.fail_ids:
            raise RemoteUnavailableError(f"failed {key}")
        if self.reject_all or key in self.reject_ids:
            raise RemoteRejectedError("Missing required fields", status_code=400, retryable=False)

    def _new_id(self, prefix):
        value = f"{prefix}{self._next_id}"
        self._next_id += 1
        return value

    def get_time_entries(self, tenant_id, user_id, day=None):
        self._guard("get_time_entries", tenant_id, user_id, day)
        return [e for e in self.time_entries if day is None or str(e["timestamp"]).startswith(day)]

    def save_time_punch(self, tenant_id, payload):
        self._guard("save_time_punch", tenant_id, payload)
        self._check_fail(payload.get("client_id"))
        return {"id": self._new_id("srv-te-"), **payload}

    def create_time_adjustment_request(self, tenant_id, payload):
        self._guard("create_time_adjustment_request", tenant_id, payload)
        self._check_fail(payload.get("client_id"))
        return {"id": self._new_id("srv-adj-"), **payload}

    def get_time_adjustment_requests(self, tenant_id, *, user_id=None, status=None):
        self._guard("get_time_adjustment_requests", tenant_id, user_id)
        return list(self.adjustments)

    def get_leave_requests(self, tenant_id, *, user_id=None, status=None):
        self._guard("get_leave_requests", tenant_id, user_id)
        return list(self.leave_requests)

    def create_leave_request(self, tenant_id, payload):
        self._guard("create_leave_request", tenant_id, payload)
        self._check_fail(payload.get("id"))
        return {**payload, "id": self._new_id("srv-lr-")}

    def update_leave_request(self, tenant_id, request_id, payload):
        self._guard("update_leave_request", tenant_id, request_id, payload)
        return {"id": request_id, **payload}

    def get_leave_balances(self, tenant_id, user_id):
        self._guard("get_leave_balances", tenant_id, user_id)
        return dict(self.balances)

    def get_expense_claims(self, tenant_id, *, user_id=None, status=None):
        self._guard("get_expense_claims", tenant_id, user_id)
        return list(self.expenses)

    def create_expense_claim(self, tenant_id, payload):
        self._guard("create_expense_claim", tenant_id, payload)
        self._check_fail(payload.get("id"))
        return {**payload, "id": self._new_id("srv-exp-")}

    def update_expense_claim(self, tenant_id, expense_id, payload):
        self._guard("update_expense_claim", tenant_id, expense_id, payload)
        return {"id": expense_id, **payload}

    def send(self, tenant_id, method, path, body=None):
        self._guard("send", tenant_id, method, path, body)
        self._check_fail(path)
        return {}

    def called(self, name) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def staging():
    return FakeStaging()


@pytest.fixture
def remote():
    return FakeRemote()
