"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes the
generic find / get / create / update / delete operations plus the few
conditional writes the lifecycle engine relies on.  ``EntityStore`` bundles
one repository per entity kind over a single session.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DriverModel, RequestModel, TripModel, UserModel, VehicleModel
from fleet.domain.enums import EntityKind, RequestStatus, UserStatus
from fleet.domain.errors import Conflict


def normalize_email(email: str) -> str:
    return email.strip().lower()


class Repository:
    model: Any = None

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, entity_id: str, *, refresh: bool = False):
        return await self.session.get(
            self.model, entity_id, populate_existing=refresh
        )

    async def exists(self, entity_id: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(self.model)
            .where(self.model.id == entity_id)
        )
        return bool(result.scalar())

    async def find(self, **filters: Any) -> list:
        """Equality filters; ``None`` values are ignored.  Insertion order."""
        query = select(self.model)
        for name, value in filters.items():
            if value is not None:
                query = query.where(getattr(self.model, name) == value)
        query = query.order_by(self.model.created_at, self.model.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, **fields: Any):
        if fields.get("id") is None:
            fields.pop("id", None)
        entity_id = fields.get("id")
        if entity_id is not None and await self.exists(entity_id):
            raise Conflict(f"{self.model.__tablename__} {entity_id} already exists")
        entity = self.model(**fields)
        self.session.add(entity)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(f"Duplicate {self.model.__tablename__} record") from exc
        return entity

    async def update(self, entity_id: str, **patch: Any):
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return None
        for name, value in patch.items():
            setattr(entity, name, value)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(f"Duplicate {self.model.__tablename__} record") from exc
        return entity

    async def delete(self, entity_id: str) -> bool:
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.flush()
        return True


class VehicleRepository(Repository):
    model = VehicleModel

    async def add_mileage(self, vehicle_id: str, kilometers: int) -> bool:
        """Atomic ``mileage += kilometers``; False if the vehicle is missing."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .values(mileage=func.coalesce(VehicleModel.mileage, 0) + kilometers)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0


class DriverRepository(Repository):
    model = DriverModel


class TripRepository(Repository):
    model = TripModel

    async def get_by_request(self, request_id: str) -> Optional[TripModel]:
        result = await self.session.execute(
            select(TripModel).where(TripModel.request_id == request_id)
        )
        return result.scalar_one_or_none()


class RequestRepository(Repository):
    model = RequestModel

    async def compare_and_set(
        self, request_id: str, expected_status: RequestStatus, **patch: Any
    ) -> bool:
        """UPDATE ... WHERE status = expected.  False if the row moved on."""
        result = await self.session.execute(
            update(RequestModel)
            .where(
                RequestModel.id == request_id,
                RequestModel.status == expected_status,
            )
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class UserRepository(Repository):
    """Emails are stored and looked up in normalised (lower-case) form."""

    model = UserModel

    async def create(self, **fields: Any):
        if fields.get("email"):
            fields["email"] = normalize_email(fields["email"])
        return await super().create(**fields)

    async def update(self, entity_id: str, **patch: Any):
        if patch.get("email"):
            patch["email"] = normalize_email(patch["email"])
        return await super().update(entity_id, **patch)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def decide(
        self, user_id: str, expected_status: UserStatus, target: UserStatus
    ) -> bool:
        """Move the account from *expected_status* to *target*; False if it moved on."""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.status == expected_status)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_pending(self) -> list[UserModel]:
        return await self.find(status=UserStatus.PENDING)


class EntityStore:
    """Generic, kind-addressed access to every collection in one session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.vehicles = VehicleRepository(session)
        self.drivers = DriverRepository(session)
        self.trips = TripRepository(session)
        self.requests = RequestRepository(session)
        self.users = UserRepository(session)
        self._by_kind: dict[EntityKind, Repository] = {
            EntityKind.VEHICLE: self.vehicles,
            EntityKind.DRIVER: self.drivers,
            EntityKind.TRIP: self.trips,
            EntityKind.REQUEST: self.requests,
            EntityKind.USER: self.users,
        }

    def repository(self, kind: EntityKind) -> Repository:
        return self._by_kind[kind]

    async def find(self, kind: EntityKind, **filters: Any) -> list:
        return await self.repository(kind).find(**filters)

    async def get(self, kind: EntityKind, entity_id: str):
        return await self.repository(kind).get_by_id(entity_id)

    async def create(self, kind: EntityKind, **fields: Any):
        return await self.repository(kind).create(**fields)

    async def update(self, kind: EntityKind, entity_id: str, **patch: Any):
        return await self.repository(kind).update(entity_id, **patch)

    async def delete(self, kind: EntityKind, entity_id: str) -> bool:
        return await self.repository(kind).delete(entity_id)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
