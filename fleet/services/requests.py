"""
Request Lifecycle Engine
========================

Executes the plans produced by ``fleet.domain.lifecycle`` against the store.

Concurrency safety
------------------
* **Per-request critical section** (``request:<id>`` from the configured
  lock provider) serialises every mutation of one request, and the unit of
  work is committed *inside* it, so the next holder reads the committed
  status.
* **Compare-and-swap** on ``requests.status`` (``UPDATE ... WHERE status =
  :previous``) backs the lock up when several processes share a database;
  a lost race is reported as ``Conflict``.
* **Atomic increment** of ``vehicles.mileage`` in SQL, so two requests
  completing against the same vehicle never lose an update.

Completion sequence
-------------------
1. Read the stored request, plan the patch (terminal -> read-only,
   transition table, edge trigger on the previous status).
2. Write the patch with compare-and-swap.
3. When the plan completes the request with positive ``kilometers``: add
   the distance to the vehicle's mileage and record the trip.
4. Commit.  Any failure rolls back the request, the trip and the mileage
   together.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

from fleet.domain.entities import Identity, TransportRequest
from fleet.domain.enums import EntityKind, RequestStatus, is_terminal
from fleet.domain.errors import Conflict, InvalidTransition, NotFound
from fleet.domain.lifecycle import TransitionPlan, plan_update
from fleet.domain.policy import Action, authorize
from fleet.infrastructure.locks import LockTimeout
from fleet.infrastructure.models import RequestModel, TripModel
from fleet.infrastructure.repositories import EntityStore

logger = logging.getLogger(__name__)


class LockProvider(Protocol):
    def hold(self, key: str) -> Any: ...


class RequestLifecycleEngine:
    def __init__(
        self,
        store: EntityStore,
        locks: LockProvider,
        strict_accrual: bool = True,
    ):
        self.store = store
        self.locks = locks
        self.strict_accrual = strict_accrual

    # ── Reads ─────────────────────────────────────────────────────

    async def list_requests(
        self, identity: Identity, **filters: Any
    ) -> list[RequestModel]:
        authorize(identity, Action.LIST, EntityKind.REQUEST)
        return await self.store.requests.find(**filters)

    async def get_request(self, identity: Identity, request_id: str) -> RequestModel:
        authorize(identity, Action.READ, EntityKind.REQUEST)
        return await self._load(request_id)

    # ── Mutations ─────────────────────────────────────────────────

    async def create_request(
        self, identity: Identity, fields: Mapping[str, Any]
    ) -> RequestModel:
        authorize(identity, Action.CREATE, EntityKind.REQUEST)
        data = dict(fields)
        status = RequestStatus(data.get("status") or RequestStatus.PLANNED)
        if is_terminal(status):
            raise InvalidTransition(f"A request cannot start as {status.value}")
        data["status"] = status
        await self._check_references(data["vehicle_id"], data["driver_id"])

        request = await self.store.requests.create(**data)
        logger.info(
            "Request %s created (%s, vehicle=%s)",
            request.id,
            status.value,
            request.vehicle_id,
        )
        return request

    async def update_request(
        self, identity: Identity, request_id: str, patch: Mapping[str, Any]
    ) -> RequestModel:
        """Apply *patch*; completing the request records a trip and accrues mileage."""
        authorize(identity, Action.UPDATE, EntityKind.REQUEST, fields=patch)
        async with self._critical_section(request_id):
            return await self._apply(request_id, dict(patch))

    async def delete_request(self, identity: Identity, request_id: str) -> None:
        authorize(identity, Action.DELETE, EntityKind.REQUEST)
        async with self._critical_section(request_id):
            request = TransportRequest.from_model(await self._load(request_id))
            request.ensure_mutable()
            await self.store.requests.delete(request_id)

    # ── Internals ─────────────────────────────────────────────────

    def _critical_section(self, request_id: str) -> "_UnitOfWork":
        return _UnitOfWork(self, f"request:{request_id}")

    async def _load(self, request_id: str) -> RequestModel:
        request = await self.store.requests.get_by_id(request_id, refresh=True)
        if request is None:
            raise NotFound(f"Request {request_id} not found")
        return request

    async def _check_references(
        self, vehicle_id: Optional[str], driver_id: Optional[str]
    ) -> None:
        if vehicle_id is not None and not await self.store.vehicles.exists(vehicle_id):
            raise NotFound(f"Vehicle {vehicle_id} not found")
        if driver_id is not None and not await self.store.drivers.exists(driver_id):
            raise NotFound(f"Driver {driver_id} not found")

    async def _apply(self, request_id: str, patch: dict[str, Any]) -> RequestModel:
        current = TransportRequest.from_model(await self._load(request_id))
        plan = plan_update(current, patch)

        moved = {
            k: patch[k]
            for k in ("vehicle_id", "driver_id")
            if k in patch and patch[k] != getattr(current, k)
        }
        await self._check_references(moved.get("vehicle_id"), moved.get("driver_id"))

        values = {k: v for k, v in patch.items() if k != "status"}
        values["status"] = plan.request.status
        swapped = await self.store.requests.compare_and_set(
            request_id, plan.previous_status, **values
        )
        if not swapped:
            raise Conflict(f"Request {request_id} was modified concurrently")

        if plan.status_changed:
            logger.info(
                "Request %s: %s -> %s",
                request_id,
                plan.previous_status.value,
                plan.request.status.value,
            )
        if plan.trip is not None:
            await self._complete(plan)
        return await self._load(request_id)

    async def _complete(self, plan: TransitionPlan) -> TripModel:
        draft = plan.trip
        notes = draft.notes
        accrued = await self.store.vehicles.add_mileage(
            draft.vehicle_id, draft.distance_km
        )
        if not accrued:
            if self.strict_accrual:
                raise NotFound(
                    f"Vehicle {draft.vehicle_id} not found; request not completed"
                )
            logger.warning(
                "Vehicle %s missing: trip for request %s recorded without mileage",
                draft.vehicle_id,
                draft.request_id,
            )
            notes = f"{notes} [mileage not accrued: vehicle {draft.vehicle_id} missing]"

        trip = await self.store.trips.create(
            request_id=draft.request_id,
            driver_id=draft.driver_id,
            vehicle_id=draft.vehicle_id,
            date=draft.date,
            distance_km=draft.distance_km,
            notes=notes,
        )
        logger.info(
            "Request %s done: trip %s, vehicle %s +%d km",
            draft.request_id,
            trip.id,
            draft.vehicle_id,
            draft.distance_km if accrued else 0,
        )
        return trip


class _UnitOfWork:
    """Hold the request lock; commit on success, roll back on any error."""

    def __init__(self, engine: RequestLifecycleEngine, key: str):
        self.engine = engine
        self.key = key
        self._hold = None

    async def __aenter__(self) -> None:
        self._hold = self.engine.locks.hold(self.key)
        try:
            await self._hold.__aenter__()
        except LockTimeout as exc:
            raise Conflict("Request is being modified, retry later") from exc

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                await self.engine.store.commit()
            else:
                await self.engine.store.rollback()
        finally:
            await self._hold.__aexit__(exc_type, exc, tb)
        return False
