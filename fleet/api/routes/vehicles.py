"""
Vehicle endpoints
=================

GET    /api/vehicles       -- list in insertion order
POST   /api/vehicles       -- create
GET    /api/vehicles/{id}  -- read
PUT    /api/vehicles/{id}  -- update; lowering mileage needs ?correction=true
DELETE /api/vehicles/{id}  -- delete
"""

import logging

from fastapi import APIRouter, Depends, Query, Response

from fleet.api.dependencies import get_current_identity, get_store
from fleet.api.schemas import VehicleCreate, VehicleResponse, VehicleUpdate
from fleet.domain.entities import Identity
from fleet.domain.enums import EntityKind
from fleet.domain.errors import NotFound, ValidationError
from fleet.domain.policy import Action, authorize
from fleet.infrastructure.repositories import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=list[VehicleResponse], summary="List vehicles")
async def list_vehicles(
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.LIST, EntityKind.VEHICLE)
    return await store.vehicles.find()


@router.post(
    "", status_code=201, response_model=VehicleResponse, summary="Create a vehicle"
)
async def create_vehicle(
    body: VehicleCreate,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.CREATE, EntityKind.VEHICLE)
    return await store.vehicles.create(**body.model_dump())


@router.get("/{vehicle_id}", response_model=VehicleResponse, summary="Get a vehicle")
async def get_vehicle(
    vehicle_id: str,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.READ, EntityKind.VEHICLE)
    vehicle = await store.vehicles.get_by_id(vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle not found")
    return vehicle


@router.put(
    "/{vehicle_id}", response_model=VehicleResponse, summary="Update a vehicle"
)
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    correction: bool = Query(
        False, description="Allow mileage to go down (explicit correction)."
    ),
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    changes = body.changes()
    authorize(identity, Action.UPDATE, EntityKind.VEHICLE, fields=changes)
    vehicle = await store.vehicles.get_by_id(vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle not found")

    if "mileage" in changes:
        if changes["mileage"] is None:
            raise ValidationError("Mileage cannot be null")
        if changes["mileage"] < (vehicle.mileage or 0):
            if not correction:
                raise ValidationError(
                    "Mileage cannot decrease; pass correction=true to correct it"
                )
            logger.info(
                "Mileage of vehicle %s corrected %d -> %d by %s",
                vehicle_id,
                vehicle.mileage,
                changes["mileage"],
                identity.id,
            )
    if "status" in changes and changes["status"] is None:
        raise ValidationError("Status cannot be null")
    return await store.vehicles.update(vehicle_id, **changes)


@router.delete("/{vehicle_id}", status_code=204, summary="Delete a vehicle")
async def delete_vehicle(
    vehicle_id: str,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.DELETE, EntityKind.VEHICLE)
    if not await store.vehicles.delete(vehicle_id):
        raise NotFound("Vehicle not found")
    return Response(status_code=204)
