"""
FastAPI application factory.

* Registers routes for auth, users, vehicles, drivers, trips and requests.
* Owns the long-lived resources through the lifespan: the ``Database``
  handle and the lock provider are built at startup, kept on ``app.state``
  and torn down at shutdown.  Both can be injected instead (tests).
* Maps the domain error taxonomy onto HTTP responses; storage errors are
  logged and surfaced without driver detail.
* Applies rate-limiting to the public auth endpoints.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from fleet.api.middleware import limiter, log_requests
from fleet.api.routes import auth, drivers, requests, system, trips, users, vehicles
from fleet.config import Settings, settings as default_settings
from fleet.domain.errors import DomainError, InvalidCredentials, Unauthenticated, UnknownUser
from fleet.infrastructure.database import Database
from fleet.infrastructure.locks import LocalLockProvider, RedisLockProvider
from fleet.infrastructure.redis_client import create_redis
from fleet.infrastructure.repositories import EntityStore
from fleet.services.identity import IdentityResolver
from fleet.services.users import UserService

logger = logging.getLogger(__name__)


def build_lock_provider(settings: Settings):
    if settings.lock_backend == "redis":
        return RedisLockProvider(
            create_redis(settings.redis_url),
            ttl_seconds=settings.lock_ttl_seconds,
            wait_seconds=settings.lock_wait_seconds,
        )
    if settings.lock_backend != "local":
        raise ValueError(f"Unknown lock backend: {settings.lock_backend}")
    return LocalLockProvider()


async def bootstrap(database: Database, settings: Settings) -> None:
    """Create the configured superadmin account if it does not exist yet."""
    if not (settings.superadmin_email and settings.superadmin_password):
        return
    async with database.session() as session:
        store = EntityStore(session)
        service = UserService(store, IdentityResolver(store, settings))
        await service.ensure_superadmin(
            settings.superadmin_email, settings.superadmin_password
        )
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the database handle and lock provider; release them on shutdown."""
    settings: Settings = app.state.settings
    owns_database = app.state.database is None
    owns_locks = app.state.locks is None
    if owns_database:
        app.state.database = Database(settings.database_url, echo=settings.database_echo)
    if owns_locks:
        app.state.locks = build_lock_provider(settings)

    if settings.create_schema_on_startup:
        await app.state.database.create_schema()
    await bootstrap(app.state.database, settings)
    logger.info("Fleet API started (locks=%s)", settings.lock_backend)
    yield

    if owns_locks and isinstance(app.state.locks, RedisLockProvider):
        await app.state.locks.close()
    if owns_database:
        await app.state.database.dispose()
    logger.info("Fleet API stopped")


# ── Error mapping ─────────────────────────────────────────────────────


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    kind, detail = exc.kind, exc.message
    # wrong password and unknown email look the same from outside
    if isinstance(exc, (InvalidCredentials, UnknownUser)):
        kind, detail = InvalidCredentials.kind, "Invalid email or password"
    headers = None
    if isinstance(exc, Unauthenticated) and exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": kind, "detail": detail},
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"kind": "ValidationError", "detail": jsonable_encoder(exc.errors())},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"kind": "StorageError", "detail": "Internal storage error"},
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    locks=None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Fleet Records API",
        description=(
            "Vehicles, drivers, trips and transport requests for an "
            "organisational unit.  Completing a request records the trip "
            "and accrues the vehicle's mileage; access is governed by "
            "user / admin / superadmin roles."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.locks = locks

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    # Routers
    for module in (system, auth, users, vehicles, drivers, trips, requests):
        app.include_router(module.router, prefix="/api")

    return app
