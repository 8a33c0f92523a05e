"""
Driver endpoints
================

GET    /api/drivers       -- list
POST   /api/drivers       -- create
GET    /api/drivers/{id}  -- read
PUT    /api/drivers/{id}  -- update
DELETE /api/drivers/{id}  -- delete
"""

from fastapi import APIRouter, Depends, Response

from fleet.api.dependencies import get_current_identity, get_store
from fleet.api.schemas import DriverCreate, DriverResponse, DriverUpdate
from fleet.domain.entities import Identity
from fleet.domain.enums import EntityKind
from fleet.domain.errors import NotFound
from fleet.domain.policy import Action, authorize
from fleet.infrastructure.repositories import EntityStore

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("", response_model=list[DriverResponse], summary="List drivers")
async def list_drivers(
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.LIST, EntityKind.DRIVER)
    return await store.drivers.find()


@router.post(
    "", status_code=201, response_model=DriverResponse, summary="Create a driver"
)
async def create_driver(
    body: DriverCreate,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.CREATE, EntityKind.DRIVER)
    return await store.drivers.create(**body.model_dump())


@router.get("/{driver_id}", response_model=DriverResponse, summary="Get a driver")
async def get_driver(
    driver_id: str,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.READ, EntityKind.DRIVER)
    driver = await store.drivers.get_by_id(driver_id)
    if not driver:
        raise NotFound("Driver not found")
    return driver


@router.put("/{driver_id}", response_model=DriverResponse, summary="Update a driver")
async def update_driver(
    driver_id: str,
    body: DriverUpdate,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    changes = body.changes()
    authorize(identity, Action.UPDATE, EntityKind.DRIVER, fields=changes)
    driver = await store.drivers.update(driver_id, **changes)
    if not driver:
        raise NotFound("Driver not found")
    return driver


@router.delete("/{driver_id}", status_code=204, summary="Delete a driver")
async def delete_driver(
    driver_id: str,
    identity: Identity = Depends(get_current_identity),
    store: EntityStore = Depends(get_store),
):
    authorize(identity, Action.DELETE, EntityKind.DRIVER)
    if not await store.drivers.delete(driver_id):
        raise NotFound("Driver not found")
    return Response(status_code=204)
