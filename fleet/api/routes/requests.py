"""
Transport request endpoints
===========================

GET    /api/requests        -- list, optionally ?status= / ?vehicleId= / ?driverId=
POST   /api/requests        -- create (status defaults to planned)
GET    /api/requests/{id}   -- read
PUT    /api/requests/{id}   -- update; setting status=done records the trip
PATCH  /api/requests/{id}   -- same as PUT
DELETE /api/requests/{id}   -- delete (not once done or canceled)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from fleet.api.dependencies import get_current_identity, get_lifecycle_engine
from fleet.api.schemas import RequestCreate, RequestResponse, RequestUpdate
from fleet.domain.entities import Identity
from fleet.domain.enums import RequestStatus
from fleet.services.requests import RequestLifecycleEngine

router = APIRouter(prefix="/requests", tags=["requests"])


@router.get("", response_model=list[RequestResponse], summary="List requests")
async def list_requests(
    status: Optional[RequestStatus] = Query(None),
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    driver_id: Optional[str] = Query(None, alias="driverId"),
    identity: Identity = Depends(get_current_identity),
    engine: RequestLifecycleEngine = Depends(get_lifecycle_engine),
):
    return await engine.list_requests(
        identity, status=status, vehicle_id=vehicle_id, driver_id=driver_id
    )


@router.post(
    "", status_code=201, response_model=RequestResponse, summary="Create a request"
)
async def create_request(
    body: RequestCreate,
    identity: Identity = Depends(get_current_identity),
    engine: RequestLifecycleEngine = Depends(get_lifecycle_engine),
):
    return await engine.create_request(identity, body.model_dump())


@router.get("/{request_id}", response_model=RequestResponse, summary="Get a request")
async def get_request(
    request_id: str,
    identity: Identity = Depends(get_current_identity),
    engine: RequestLifecycleEngine = Depends(get_lifecycle_engine),
):
    return await engine.get_request(identity, request_id)


@router.api_route(
    "/{request_id}",
    methods=["PUT", "PATCH"],
    response_model=RequestResponse,
    summary="Update a request",
    description=(
        "Moving a request into ``done`` with ``kilometers`` set records a "
        "trip and adds the distance to the vehicle's mileage, atomically.  "
        "Done and canceled requests are read-only (409)."
    ),
)
async def update_request(
    request_id: str,
    body: RequestUpdate,
    identity: Identity = Depends(get_current_identity),
    engine: RequestLifecycleEngine = Depends(get_lifecycle_engine),
):
    return await engine.update_request(identity, request_id, body.changes())


@router.delete("/{request_id}", status_code=204, summary="Delete a request")
async def delete_request(
    request_id: str,
    identity: Identity = Depends(get_current_identity),
    engine: RequestLifecycleEngine = Depends(get_lifecycle_engine),
):
    await engine.delete_request(identity, request_id)
    return Response(status_code=204)
