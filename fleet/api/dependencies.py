"""FastAPI dependency injection helpers.

Long-lived resources (settings, database, lock provider) live on
``app.state``; everything request-scoped is built from them here.
"""

from typing import AsyncIterator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fleet.config import Settings
from fleet.domain.entities import Identity
from fleet.infrastructure.repositories import EntityStore
from fleet.services.identity import IdentityResolver
from fleet.services.registration import RegistrationWorkflow
from fleet.services.requests import RequestLifecycleEngine
from fleet.services.users import UserService

bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an async DB session; commit on success, rollback on error."""
    async with request.app.state.database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_store(db: AsyncSession = Depends(get_db)) -> EntityStore:
    return EntityStore(db)


def get_identity_resolver(
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> IdentityResolver:
    return IdentityResolver(store, settings)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Identity:
    token = credentials.credentials if credentials else None
    return await resolver.resolve_token(token)


def get_lifecycle_engine(
    request: Request,
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> RequestLifecycleEngine:
    return RequestLifecycleEngine(
        store,
        request.app.state.locks,
        strict_accrual=settings.strict_mileage_accrual,
    )


def get_registration(
    store: EntityStore = Depends(get_store),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> RegistrationWorkflow:
    return RegistrationWorkflow(store, resolver)


def get_user_service(
    store: EntityStore = Depends(get_store),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> UserService:
    return UserService(store, resolver)
