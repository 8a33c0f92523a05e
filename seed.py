"""
Seed script -- populates the database with sample data for reviewers.

Run with the same FLEET_* environment as the API:
    python seed.py

Creates:
  - 4 users (superadmin, admin, user, one pending registration)
  - 6 vehicles and 4 drivers
  - 5 transport requests (planned, in-progress, canceled, and two that are
    completed through the lifecycle engine, which records their trips and
    mileage)
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from fleet.config import settings
from fleet.domain.entities import Identity
from fleet.domain.enums import RequestStatus, Role, UserStatus
from fleet.infrastructure.database import Database
from fleet.infrastructure.locks import LocalLockProvider
from fleet.infrastructure.models import UserModel
from fleet.infrastructure.repositories import EntityStore
from fleet.services.identity import IdentityResolver
from fleet.services.requests import RequestLifecycleEngine


USERS = [
    {"email": "superadmin@example.com", "name": "Коваль Олена Петрівна", "position": "Head of unit", "role": Role.SUPERADMIN, "status": UserStatus.ACTIVE},
    {"email": "admin@example.com", "name": "Шевченко Андрій Іванович", "position": "Dispatcher", "role": Role.ADMIN, "status": UserStatus.ACTIVE},
    {"email": "user@example.com", "name": "Бондар Ірина Олегівна", "position": "Logistics officer", "role": Role.USER, "status": UserStatus.ACTIVE},
    {"email": "newcomer@example.com", "name": "Мельник Тарас Юрійович", "position": "Driver", "role": Role.USER, "status": UserStatus.PENDING},
]
SEED_PASSWORD = "password1"

VEHICLES = [
    {"id": "v1", "make": "Toyota", "model": "Hilux", "type": "pickup", "registration_number": "AA1234BB", "assigned_unit": "HQ", "mileage": 48210},
    {"id": "v2", "make": "Volkswagen", "model": "Transporter", "type": "van", "registration_number": "AA5678CE", "assigned_unit": "HQ", "mileage": 120400},
    {"id": "v3", "make": "Renault", "model": "Duster", "type": "suv", "registration_number": "KA0001AO", "assigned_unit": "North", "mileage": 30550},
    {"id": "v4", "make": "Mitsubishi", "model": "L200", "type": "pickup", "registration_number": "BC4321KT", "assigned_unit": "North", "mileage": 76900},
    {"id": "v5", "make": "Skoda", "model": "Octavia", "type": "sedan", "registration_number": "AI7788HP", "assigned_unit": "South", "mileage": 15020},
    {"id": "v6", "make": "Ford", "model": "Transit", "type": "van", "registration_number": "AX9090MM", "assigned_unit": "South", "status": "maintenance", "mileage": 201300},
]

DRIVERS = [
    {"id": "d1", "last_name": "Ткаченко", "first_name": "Сергій", "middle_name": "Миколайович", "phone": "+380501112233", "license_number": "BXX123456", "license_category": "B, C"},
    {"id": "d2", "last_name": "Кравчук", "first_name": "Олег", "middle_name": "Васильович", "phone": "+380672223344", "license_number": "BXX654321", "license_category": "B"},
    {"id": "d3", "last_name": "Олійник", "first_name": "Наталія", "middle_name": "Андріївна", "phone": "+380933334455", "license_number": "CXX112233", "license_category": "B"},
    {"id": "d4", "last_name": "Лисенко", "first_name": "Дмитро", "middle_name": "Ігорович", "phone": "+380504445566", "license_number": "CXX445566", "license_category": "B, C, D"},
]


def _requests(now: datetime) -> list[dict]:
    return [
        {"id": "r1", "vehicle_id": "v1", "driver_id": "d1", "origin": "Kyiv", "destination": "Zhytomyr", "depart_at": now + timedelta(days=1), "kilometers": 140},
        {"id": "r2", "vehicle_id": "v2", "driver_id": "d2", "origin": "Kyiv", "destination": "Bila Tserkva", "depart_at": now, "kilometers": 85, "status": RequestStatus.IN_PROGRESS},
        {"id": "r3", "vehicle_id": "v3", "driver_id": "d3", "origin": "Chernihiv", "destination": "Kyiv", "depart_at": now - timedelta(days=2), "kilometers": 150},
        {"id": "r4", "vehicle_id": "v4", "driver_id": "d4", "origin": "Sumy", "destination": "Poltava", "depart_at": now - timedelta(days=3), "kilometers": 175},
        {"id": "r5", "vehicle_id": "v5", "driver_id": "d1", "origin": "Odesa", "destination": "Mykolaiv", "depart_at": now - timedelta(days=1)},
    ]


async def seed(database: Database):
    async with database.session() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(UserModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        store = EntityStore(session)
        resolver = IdentityResolver(store, settings)

        # ── Users ─────────────────────────────────────────────────────
        password_hash = resolver.hash_password(SEED_PASSWORD)
        users = [
            await store.users.create(password_hash=password_hash, **u) for u in USERS
        ]
        print(f"  Created {len(users)} users (password: {SEED_PASSWORD})")

        # ── Vehicles & drivers ────────────────────────────────────────
        for v in VEHICLES:
            await store.vehicles.create(**v)
        for d in DRIVERS:
            await store.drivers.create(**d)
        print(f"  Created {len(VEHICLES)} vehicles, {len(DRIVERS)} drivers")

        # ── Requests ──────────────────────────────────────────────────
        engine = RequestLifecycleEngine(store, LocalLockProvider())
        dispatcher = Identity(id=users[1].id, role=Role.ADMIN, email=users[1].email)
        for r in _requests(datetime.now(timezone.utc)):
            await engine.create_request(dispatcher, r)
        await session.commit()

        # r3 and r4 go through the lifecycle so trips and mileage are real
        for request_id in ("r3", "r4"):
            await engine.update_request(
                dispatcher, request_id, {"status": RequestStatus.DONE}
            )
        await engine.update_request(
            dispatcher, "r5", {"status": RequestStatus.CANCELED}
        )
        print("  Created 5 requests (2 completed with trips)")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    database = Database(settings.database_url)
    await database.create_schema()
    try:
        await seed(database)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
