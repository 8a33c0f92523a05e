"""
Async SQLAlchemy engine and session factory.

``Database`` is constructed once at process start (see the application
lifespan), handed to request handlers through ``app.state`` and disposed
at shutdown.  Uses ``asyncpg`` against PostgreSQL and ``aiosqlite`` for
local runs and tests.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


class Database:
    def __init__(self, url: str, echo: bool = False):
        options = {}
        if not url.startswith("sqlite"):
            options.update(pool_size=20, max_overflow=10)
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **options)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_schema(self) -> None:
        # models must be imported so their tables are registered on Base
        from . import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
