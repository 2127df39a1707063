from __future__ import annotations

from typing import Protocol, Sequence

from .model import AdjustmentRequest


class AdjustmentStagingStore(Protocol):
    """Durable staging area for adjustment requests the server has not confirmed.

    Scoped per ``(tenant_id, user_id)``; the whole list is read and written at
    once (last writer wins).
    """

    def load(self, tenant_id: str, user_id: str) -> Sequence[AdjustmentRequest]:
        raise NotImplementedError

    def save_all(self, tenant_id: str, user_id: str, requests: Sequence[AdjustmentRequest]) -> None:
        raise NotImplementedError

    def clear(self, tenant_id: str, user_id: str) -> None:
        raise NotImplementedError
