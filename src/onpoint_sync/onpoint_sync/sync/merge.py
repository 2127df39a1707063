from __future__ import annotations

from typing import Callable, Hashable, Sequence, TypeVar

from ..adjustments.model import AdjustmentRequest
from ..timeclock.model import TimeEntry

T = TypeVar("T")


def adjustment_key(req: AdjustmentRequest) -> Hashable:
    """Business key: the same day in the same status is the same logical request."""
    return req.business_key


def punch_key(entry: TimeEntry) -> Hashable:
    return entry.id


def merge_by_key(remote: Sequence[T], local: Sequence[T], key: Callable[[T], Hashable]) -> list[T]:
    """Merge remote records with locally queued ones; local wins on a key match.

    The local record takes the position of the first remote record with the
    same key (later remote records with that key are dropped). Remote records
    with no local counterpart pass through untouched. Local records without a
    remote match are appended in their local order.
    """

    local_by_key: dict[Hashable, T] = {}
    local_order: list[Hashable] = []
    for item in local:
        k = key(item)
        if k not in local_by_key:
            local_order.append(k)
        local_by_key[k] = item

    merged: list[T] = []
    placed: set[Hashable] = set()
    for item in remote:
        k = key(item)
        if k not in local_by_key:
            merged.append(item)
        elif k not in placed:
            merged.append(local_by_key[k])
            placed.add(k)

    for k in local_order:
        if k not in placed:
            merged.append(local_by_key[k])
            placed.add(k)
    return merged


def merge_adjustments(
    remote: Sequence[AdjustmentRequest], local: Sequence[AdjustmentRequest]
) -> list[AdjustmentRequest]:
    return merge_by_key(remote, local, adjustment_key)


def merge_punches(remote: Sequence[TimeEntry], local: Sequence[TimeEntry]) -> list[TimeEntry]:
    return merge_by_key(remote, local, punch_key)
