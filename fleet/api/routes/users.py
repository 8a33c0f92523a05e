"""
User endpoints
==============

GET    /api/registrations          -- accounts awaiting approval
POST   /api/users/{id}/approve     -- pending -> active
POST   /api/users/{id}/reject      -- pending -> rejected
GET    /api/users                  -- list (admin, superadmin)
POST   /api/users                  -- create with any role (superadmin)
GET    /api/users/{id}             -- read (own record, or admin+)
PUT    /api/users/{id}             -- field-restricted update
DELETE /api/users/{id}             -- delete (superadmin)
"""

from fastapi import APIRouter, Depends, Response

from fleet.api.dependencies import (
    get_current_identity,
    get_registration,
    get_user_service,
)
from fleet.api.schemas import UserCreate, UserResponse, UserUpdate
from fleet.domain.entities import Identity
from fleet.services.registration import RegistrationWorkflow
from fleet.services.users import UserService

router = APIRouter(tags=["users"])


@router.get(
    "/registrations",
    response_model=list[UserResponse],
    summary="List pending registrations",
)
async def list_registrations(
    identity: Identity = Depends(get_current_identity),
    registration: RegistrationWorkflow = Depends(get_registration),
):
    return await registration.list_pending(identity)


@router.post(
    "/users/{user_id}/approve",
    response_model=UserResponse,
    summary="Approve a pending registration",
)
async def approve_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    registration: RegistrationWorkflow = Depends(get_registration),
):
    return await registration.approve(identity, user_id)


@router.post(
    "/users/{user_id}/reject",
    response_model=UserResponse,
    summary="Reject a pending registration",
)
async def reject_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    registration: RegistrationWorkflow = Depends(get_registration),
):
    return await registration.reject(identity, user_id)


@router.get("/users", response_model=list[UserResponse], summary="List users")
async def list_users(
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    return await users.list_users(identity)


@router.post(
    "/users", status_code=201, response_model=UserResponse, summary="Create a user"
)
async def create_user(
    body: UserCreate,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    return await users.create_user(identity, body.model_dump())


@router.get("/users/{user_id}", response_model=UserResponse, summary="Get a user")
async def get_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    return await users.get_user(identity, user_id)


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
    description=(
        "Superadmins may change any field; admins only ``position``; users "
        "only their own record and never ``role`` or ``status``.  A request "
        "touching a disallowed field is rejected as a whole."
    ),
)
async def update_user(
    user_id: str,
    body: UserUpdate,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    return await users.update_user(identity, user_id, body.changes())


@router.delete("/users/{user_id}", status_code=204, summary="Delete a user")
async def delete_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    await users.delete_user(identity, user_id)
    return Response(status_code=204)
