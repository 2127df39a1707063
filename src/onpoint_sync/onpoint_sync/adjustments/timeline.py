from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import end_of_day, parse_hhmm
from ..common.ids import new_provisional_id
from ..core.enums import PunchType, RequestStatus
from ..core.exceptions import ValidationError
from ..remote.adapters import adjustment_create_payload
from ..timeclock.model import TimeEntry
from .model import AdjustmentDraft, AdjustmentRequest, TimelineEntry

MAX_PAIRS_PER_REQUEST = 2


def inferred_type_at(index: int) -> PunchType:
    """Punches of a day alternate IN, OUT, IN, OUT... starting with IN."""
    return PunchType.CLOCK_IN if index % 2 == 0 else PunchType.CLOCK_OUT


def draft_time(draft: AdjustmentDraft) -> Optional[time]:
    """The chosen time, or None while it is empty or only half typed."""
    if not draft.has_time:
        return None
    try:
        return parse_hhmm(draft.time)
    except ValidationError:
        return None


def draft_timestamp(draft: AdjustmentDraft, target_date: date, *, undecided_rank: int = 0) -> datetime:
    """Where a draft lands on the day.

    Drafts without a usable time go to the end of the day, nudged by one
    microsecond per rank so several undecided drafts keep their creation order.
    """

    chosen = draft_time(draft)
    if chosen is not None:
        return datetime.combine(target_date, chosen)
    return end_of_day(target_date) + timedelta(microseconds=undecided_rank + 1)


def build_timeline(
    entries: Sequence[TimeEntry],
    drafts: Sequence[AdjustmentDraft],
    target_date: date,
) -> list[TimelineEntry]:
    """Merge the day's confirmed punches with drafts into one annotated timeline.

    Pure: safe to call on every edit. Confirmed entries on other days are
    ignored. Existing alternation is not validated; if historical punches are
    out of order the inferred type of a draft simply follows its position.
    """

    rows: list[tuple[datetime, Optional[TimeEntry], Optional[AdjustmentDraft], bool]] = []

    for e in entries:
        if e.timestamp.date() != target_date:
            continue
        rows.append((e.timestamp, e, None, False))

    undecided = sorted((d for d in drafts if draft_time(d) is None), key=lambda d: d.sequence)
    rank = {d.id: i for i, d in enumerate(undecided)}
    for d in drafts:
        ts = draft_timestamp(d, target_date, undecided_rank=rank.get(d.id, 0))
        rows.append((ts, None, d, d.id in rank))

    # sorted() is stable: equal timestamps keep confirmed-before-draft order.
    rows = sorted(rows, key=lambda r: r[0])

    timeline: list[TimelineEntry] = []
    for i, (ts, entry, draft, placeholder) in enumerate(rows):
        timeline.append(
            TimelineEntry(
                timestamp=ts,
                is_new=draft is not None,
                inferred_type=inferred_type_at(i),
                entry_id=entry.id if entry else None,
                draft_id=draft.id if draft else None,
                recorded_type=entry.type if entry else None,
                placeholder=placeholder,
            )
        )
    return timeline


def timeline_to_adjustment(
    timeline: Sequence[TimelineEntry],
    drafts: Sequence[AdjustmentDraft],
    *,
    user_id: str,
    target_date: date,
    employee_name: Optional[str] = None,
) -> AdjustmentRequest:
    """Turn a fully decided timeline into one PENDING adjustment request.

    The timeline is paired IN/OUT in order; the first pair becomes
    ``requested_clock_in/out``, the second ``requested_clock_in_2/out_2``.
    """

    if any(t.placeholder for t in timeline):
        raise ValidationError("Every new punch needs a time", field="time")
    if not any(t.is_new for t in timeline):
        raise ValidationError("Add at least one punch", field="drafts")
    if len(timeline) % 2 != 0:
        raise ValidationError("Punches must pair up as clock-in/clock-out", field="drafts")

    pairs = [(timeline[i].timestamp, timeline[i + 1].timestamp) for i in range(0, len(timeline), 2)]
    if len(pairs) > MAX_PAIRS_PER_REQUEST:
        raise ValidationError(
            f"At most {MAX_PAIRS_PER_REQUEST} clock-in/clock-out pairs per day",
            field="drafts",
        )

    confirmed = [t for t in timeline if not t.is_new]
    original_in = next((t.timestamp for t in confirmed if t.recorded_type == PunchType.CLOCK_IN), None)
    original_out = next(
        (t.timestamp for t in reversed(confirmed) if t.recorded_type == PunchType.CLOCK_OUT),
        None,
    )

    reasons: list[str] = []
    for d in sorted(drafts, key=lambda d: d.sequence):
        r = (d.reason or "").strip()
        if r and r not in reasons:
            reasons.append(r)

    second = pairs[1] if len(pairs) > 1 else (None, None)
    return AdjustmentRequest(
        id=new_provisional_id(),
        user_id=str(user_id),
        employee_name=employee_name,
        date=target_date,
        original_clock_in=original_in,
        original_clock_out=original_out,
        requested_clock_in=pairs[0][0],
        requested_clock_out=pairs[0][1],
        requested_clock_in_2=second[0],
        requested_clock_out_2=second[1],
        reason="; ".join(reasons),
        status=RequestStatus.PENDING,
    )


def drafts_to_adjustment_payload(
    entries: Sequence[TimeEntry],
    drafts: Sequence[AdjustmentDraft],
    target_date: date,
    *,
    user_id: str,
    employee_name: Optional[str] = None,
) -> dict:
    """Build the timeline and return the create payload the remote API expects."""
    timeline = build_timeline(entries, drafts, target_date)
    request = timeline_to_adjustment(
        timeline, drafts, user_id=user_id, target_date=target_date, employee_name=employee_name
    )
    return adjustment_create_payload(request)
