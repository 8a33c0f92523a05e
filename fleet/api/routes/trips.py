"""
Trip endpoints
==============

GET    /api/trips        -- list, optionally ?driverId= / ?vehicleId=
POST   /api/trips        -- record a trip by hand (no mileage accrual)
GET    /api/trips/{id}   -- read
PUT    /api/trips/{id}   -- update
DELETE /api/trips/{id}   -- delete

Trips recorded by completing a request are read-only (409); trips recorded
by hand stay editable.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from fleet.api.dependencies import get_current_identity, get_store
from fleet.api.schemas import TripCreate, TripResponse, TripUpdate
from fleet.domain.entities import Identity
from fleet.domain.enums import EntityKind
from fleet.domain.errors import InvalidTransition, NotFound, ValidationError
from fleet.domain.policy import Action, authorize
from fleet.infrastructure.repositories import EntityStore

router = APIRouter(prefix="/trips", tags=["trips"])

REQUIRED_FIELDS = ("driver_id", "vehicle_id", "date", "distance_km")


async def _check_references(store: EntityStore, fields: dict) -> None:
    if "vehicle_id" in fields and not await store.vehicles.exists(fields["vehicle_id"]):
        raise NotFound(f"Vehicle {fields['vehicle_id']} not found")
    if "driver_id" in fields and not await store.drivers.exists(fields["driver_id"]):
        raise NotFound(f"Driver {fields['driver_id']} not found")


async def _get_mutable(store: EntityStore, trip_id: str):
    """Load a trip; trips recorded by completing a request are read-only."""
    trip = await store.trips.get_by_id(trip_id)
    if not trip:
        raise NotFound("Trip not found")
    if trip.request_id is not None:
        raise InvalidTransition(
            f"Trip {trip_id} was recorded by request {trip.request_id} and is read-only"
        )
    return trip


@router.get("", response_model=list[TripResponse], summary="List trips")
async def list_trips(
    driver_id: Optional[str] = Query(None, alias="driverId"),
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.LIST, EntityKind.TRIP)
    return await store.trips.find(driver_id=driver_id, vehicle_id=vehicle_id)


@router.post("", status_code=201, response_model=TripResponse, summary="Create a trip")
async def create_trip(
    body: TripCreate,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.CREATE, EntityKind.TRIP)
    fields = body.model_dump()
    fields["date"] = fields["date"] or datetime.now(timezone.utc)
    await _check_references(store, fields)
    return await store.trips.create(**fields)


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
async def get_trip(
    trip_id: str,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.READ, EntityKind.TRIP)
    trip = await store.trips.get_by_id(trip_id)
    if not trip:
        raise NotFound("Trip not found")
    return trip


@router.put("/{trip_id}", response_model=TripResponse, summary="Update a trip")
async def update_trip(
    trip_id: str,
    body: TripUpdate,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    changes = body.changes()
    authorize(identity, Action.UPDATE, EntityKind.TRIP, fields=changes)
    cleared = [k for k in REQUIRED_FIELDS if k in changes and changes[k] is None]
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")
    await _get_mutable(store, trip_id)
    await _check_references(store, changes)
    return await store.trips.update(trip_id, **changes)


@router.delete("/{trip_id}", status_code=204, summary="Delete a trip")
async def delete_trip(
    trip_id: str,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.DELETE, EntityKind.TRIP)
    await _get_mutable(store, trip_id)
    await store.trips.delete(trip_id)
    return Response(status_code=204)
