"""
Auth endpoints
==============

POST /api/auth/login     -- exchange email + password for a bearer token
POST /api/auth/register  -- self-registration (account starts pending)
GET  /api/me             -- the caller's own record
PUT  /api/me             -- update the caller's own record, returns a fresh token
"""

from fastapi import APIRouter, Depends, Request

from fleet.api.dependencies import (
    get_current_identity,
    get_identity_resolver,
    get_registration,
    get_user_service,
)
from fleet.api.middleware import limiter
from fleet.api.schemas import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    UserUpdate,
)
from fleet.config import settings
from fleet.domain.entities import Identity
from fleet.services.identity import IdentityResolver, identity_of
from fleet.services.registration import RegistrationWorkflow
from fleet.services.users import UserService

router = APIRouter(tags=["auth"])


@router.post("/auth/login", response_model=TokenResponse, summary="Log in")
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    body: LoginRequest,
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    identity = await resolver.authenticate(body.email, body.password)
    user = await resolver.store.users.get_by_id(identity.id)
    return TokenResponse(
        token=resolver.issue_token(identity),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/auth/register",
    status_code=201,
    response_model=UserResponse,
    summary="Register a new account",
    responses={201: {"description": "Account created; awaits approval."}},
)
@limiter.limit(settings.auth_rate_limit)
async def register(
    request: Request,
    body: RegisterRequest,
    registration: RegistrationWorkflow = Depends(get_registration),
):
    return await registration.register(
        body.email, body.password, name=body.name, position=body.position
    )


@router.get("/me", response_model=UserResponse, summary="Current user")
async def get_me(
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    return await users.get_user(identity, identity.id)


@router.put("/me", response_model=TokenResponse, summary="Update current user")
async def update_me(
    body: UserUpdate,
    identity: Identity = Depends(get_current_identity),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_user(identity, identity.id, body.changes())
    return TokenResponse(
        token=users.identities.issue_token(identity_of(user)),
        user=UserResponse.model_validate(user),
    )
