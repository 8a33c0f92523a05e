"""
Request lifecycle planning.

Pure decision step of the lifecycle engine: given the stored request and
a patch, work out the post-patch request and whether the update completes
it (which materialises a trip and accrues mileage).  No I/O happens here;
``fleet.services.requests`` executes the plan against the store.

Completion is edge-triggered on the *previous* status: only a move from a
non-done status into ``done`` yields a trip.  Terminal requests reject every
patch, so re-sending ``done`` can never replay the accrual.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .entities import TransportRequest, TripDraft
from .enums import RequestStatus
from .errors import ValidationError

# Fields of a request that may never be cleared by a patch
NON_NULLABLE_FIELDS = frozenset(
    {"vehicle_id", "driver_id", "origin", "destination", "status"}
)
PATCHABLE_FIELDS = NON_NULLABLE_FIELDS | {
    "depart_at",
    "arrive_at",
    "kilometers",
    "notes",
}


@dataclass(frozen=True)
class TransitionPlan:
    previous_status: RequestStatus
    request: TransportRequest
    trip: Optional[TripDraft] = None

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.request.status

    @property
    def completes(self) -> bool:
        return (
            self.previous_status != RequestStatus.DONE
            and self.request.status == RequestStatus.DONE
        )


def accrues(kilometers: Any) -> bool:
    """Only a defined, positive integer distance is accrued."""
    return (
        isinstance(kilometers, int)
        and not isinstance(kilometers, bool)
        and kilometers > 0
    )


def plan_update(
    request: TransportRequest,
    patch: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> TransitionPlan:
    """Validate *patch* against *request* and return what has to happen."""
    request.ensure_mutable()

    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown request fields: {', '.join(sorted(unknown))}")
    cleared = sorted(k for k in NON_NULLABLE_FIELDS if k in patch and patch[k] is None)
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

    previous = request.status
    updated = replace(request, **{k: v for k, v in patch.items() if k != "status"})
    if "status" in patch:
        updated.transition_to(RequestStatus(patch["status"]))

    plan = TransitionPlan(previous_status=previous, request=updated)
    if plan.completes and accrues(updated.kilometers):
        trip = TripDraft(
            request_id=updated.id,
            driver_id=updated.driver_id,
            vehicle_id=updated.vehicle_id,
            date=updated.depart_at or now or datetime.now(timezone.utc),
            distance_km=updated.kilometers,
            notes=updated.route_summary(),
        )
        plan = replace(plan, trip=trip)
    return plan
