from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import parse_hhmm
from ..core.enums import RequestStatus
from ..core.exceptions import ConflictError, RemoteError, ValidationError, is_permanent_rejection
from ..remote.adapters import adjustment_create_payload
from ..remote.client import RemoteApi
from ..sync.connectivity import ConnectivityMonitor
from ..sync.engine import ReconciliationEngine
from ..sync.model import MergedView, SubmitResult
from .model import AdjustmentDraft, AdjustmentRequest, TimelineEntry
from .repository import AdjustmentStagingStore
from .timeline import build_timeline, timeline_to_adjustment

logger = logging.getLogger(__name__)

NOTICE_STAGED = "Saved offline. The request will be submitted when you're back online."

# Statuses that still occupy a day: a new request for it would duplicate them.
_OPEN_STATUSES = (RequestStatus.PENDING, RequestStatus.APPROVED)


def validate_drafts(drafts: Sequence[AdjustmentDraft]) -> None:
    """Reject the first draft missing a valid time or a reason.

    ``field`` on the error is ``"<draft id>.time"`` or ``"<draft id>.reason"`` so
    the caller can point at the offending row.
    """

    if not drafts:
        raise ValidationError("Add at least one punch", field="drafts")
    for d in sorted(drafts, key=lambda d: d.sequence):
        if not d.has_time:
            raise ValidationError("Please select a time for every new punch", field=f"{d.id}.time")
        parse_hhmm(d.time, field=f"{d.id}.time")
        if not (d.reason or "").strip():
            raise ValidationError("Please provide a reason for every new punch", field=f"{d.id}.reason")


class AdjustmentService:
    def __init__(
        self,
        staging: AdjustmentStagingStore,
        remote: RemoteApi,
        engine: ReconciliationEngine,
        connectivity: ConnectivityMonitor,
    ):
        self._staging = staging
        self._remote = remote
        self._engine = engine
        self._connectivity = connectivity

    def timeline(
        self,
        *,
        tenant_id: str,
        user_id: str,
        target_date: date,
        drafts: Sequence[AdjustmentDraft] = (),
    ) -> list[TimelineEntry]:
        view = self._engine.load_time_entries(tenant_id, user_id, target_date.isoformat())
        return build_timeline(view.records, drafts, target_date)

    def list_requests(self, *, tenant_id: str, user_id: str) -> MergedView[AdjustmentRequest]:
        return self._engine.load_adjustments(tenant_id, user_id)

    def ensure_no_open_request(self, existing: Sequence[AdjustmentRequest], target_date: date) -> None:
        for r in existing:
            if r.date == target_date and r.status in _OPEN_STATUSES:
                raise ConflictError(
                    f"An adjustment request for {target_date.isoformat()} is already {r.status.value.lower()}"
                )

    def submit(
        self,
        *,
        tenant_id: str,
        user_id: str,
        target_date: date,
        drafts: Sequence[AdjustmentDraft],
        employee_name: Optional[str] = None,
    ) -> SubmitResult[AdjustmentRequest]:
        validate_drafts(drafts)

        current = self.list_requests(tenant_id=tenant_id, user_id=user_id)
        self.ensure_no_open_request(current.records, target_date)

        timeline = self.timeline(tenant_id=tenant_id, user_id=user_id, target_date=target_date, drafts=drafts)
        request = timeline_to_adjustment(
            timeline,
            drafts,
            user_id=user_id,
            target_date=target_date,
            employee_name=employee_name,
        )

        staged = [r for r in self._staging.load(tenant_id, user_id) if r.id != request.id]
        staged.append(request)
        self._staging.save_all(tenant_id, user_id, staged)
        logger.info("Staged adjustment %s for %s on %s", request.id, user_id, target_date.isoformat())

        if not self._connectivity.online:
            return SubmitResult(record=request, queued=True, notice=NOTICE_STAGED)

        try:
            created = self._remote.create_time_adjustment_request(tenant_id, adjustment_create_payload(request))
        except RemoteError as e:
            if is_permanent_rejection(e):
                # Refused outright: unstage so the drain does not resubmit it.
                self._staging.save_all(tenant_id, user_id, [r for r in staged if r.id != request.id])
                raise
            logger.warning("Adjustment %s submit failed, keeping it staged: %s", request.id, e)
            return SubmitResult(record=request, queued=True, notice=NOTICE_STAGED)

        server_id = created.get("id")
        if not server_id:
            return SubmitResult(record=request)

        confirmed = request.confirmed(server_id)
        self._staging.save_all(
            tenant_id,
            user_id,
            [confirmed if r.id == request.id else r for r in staged],
        )
        return SubmitResult(record=confirmed)

    def cancel(self, *, tenant_id: str, user_id: str, request_id: str) -> AdjustmentRequest:
        """Withdraw a pending request that is still staged locally."""
        staged = list(self._staging.load(tenant_id, user_id))
        found = next((r for r in staged if r.id == str(request_id)), None)
        if found is None:
            raise ValidationError("Only requests still waiting to sync can be cancelled here", field="id")
        if found.status != RequestStatus.PENDING:
            raise ValidationError("Only pending requests can be cancelled", field="status")

        self._staging.save_all(tenant_id, user_id, [r for r in staged if r.id != found.id])
        logger.info("Cancelled staged adjustment %s", found.id)
        return found
