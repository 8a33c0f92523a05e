"""
Shared test fixtures.

Every test gets a fresh SQLite database in a temporary file (via
aiosqlite), so tests run without Docker / PostgreSQL / Redis.  A file
rather than ``:memory:`` gives each session its own connection, which the
concurrency tests rely on.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from fleet.config import Settings
from fleet.domain.entities import Identity
from fleet.domain.enums import Role, UserStatus
from fleet.infrastructure.database import Database
from fleet.infrastructure.locks import LocalLockProvider
from fleet.infrastructure.repositories import EntityStore
from fleet.services.identity import IdentityResolver
from fleet.services.requests import RequestLifecycleEngine

PASSWORD = "password1"

SUPERADMIN = Identity(id="u-super", role=Role.SUPERADMIN, email="root@example.com")
ADMIN = Identity(id="u-admin", role=Role.ADMIN, email="admin@example.com")
USER = Identity(id="u-user", role=Role.USER, email="user@example.com")
OTHER_USER = Identity(id="u-other", role=Role.USER, email="other@example.com")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}",
        jwt_secret="test-secret",
        create_schema_on_startup=False,
        cors_origins=["http://test"],
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Create tables, yield the handle, then dispose of the engine."""
    db = Database(settings.database_url)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
def locks() -> LocalLockProvider:
    return LocalLockProvider()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> EntityStore:
    return EntityStore(db_session)


@pytest.fixture
def resolver(store: EntityStore, settings: Settings) -> IdentityResolver:
    return IdentityResolver(store, settings)


@pytest.fixture
def engine(store: EntityStore, locks: LocalLockProvider) -> RequestLifecycleEngine:
    return RequestLifecycleEngine(store, locks)


@pytest_asyncio.fixture
async def fleet(database: Database, settings: Settings) -> dict:
    """Seed four active accounts, vehicle ``v1`` (mileage 0) and driver ``d1``."""
    async with database.session() as session:
        store = EntityStore(session)
        password_hash = IdentityResolver(store, settings).hash_password(PASSWORD)
        for identity in (SUPERADMIN, ADMIN, USER, OTHER_USER):
            await store.users.create(
                id=identity.id,
                email=identity.email,
                password_hash=password_hash,
                name=identity.id,
                position="staff",
                role=identity.role,
                status=UserStatus.ACTIVE,
            )
        await store.vehicles.create(id="v1", make="Toyota", model="Hilux", mileage=0)
        await store.drivers.create(id="d1", last_name="Ткаченко", first_name="Сергій")
        await session.commit()
    return {
        "superadmin": SUPERADMIN,
        "admin": ADMIN,
        "user": USER,
        "other": OTHER_USER,
    }


@pytest.fixture
def auth_headers(settings: Settings):
    def _headers(identity: Identity) -> dict:
        token = IdentityResolver(None, settings).issue_token(identity)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(settings, database, locks, fleet) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient over the app with the test database and locks injected."""
    from fleet.api.app import create_app

    app = create_app(settings, database=database, locks=locks)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_request(store: EntityStore):
    """Factory: insert a planned request for v1 / d1 (30 km) and commit."""

    async def _make(**overrides):
        fields = {
            "vehicle_id": "v1",
            "driver_id": "d1",
            "origin": "Kyiv",
            "destination": "Zhytomyr",
            "kilometers": 30,
        }
        fields.update(overrides)
        request = await store.requests.create(**fields)
        await store.commit()
        return request

    return _make
