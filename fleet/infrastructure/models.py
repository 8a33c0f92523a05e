"""
SQLAlchemy ORM models.

Tables
------
* ``vehicles``  -- fleet vehicles with cumulative mileage
* ``drivers``   -- driver profiles
* ``users``     -- accounts with role and registration status
* ``trips``     -- completed trips (append-only facts)
* ``requests``  -- transport requests, the only entity with a lifecycle

Every table is keyed by an opaque string ``id``.  There are no foreign
keys: reference checks (request -> vehicle / driver) belong to the
services, not the store.

Indexes
-------
* **Unique** on ``users.email`` and ``trips.request_id`` (a request
  materialises at most one trip).
* **B-Tree** on ``requests.status`` and the vehicle / driver references
  used by the list filters.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
)

from .database import Base
from fleet.domain.enums import RequestStatus, Role, UserStatus


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _values(enum_cls):
    return [member.value for member in enum_cls]


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(64), primary_key=True, default=new_id)
    make = Column(String(80), nullable=True)
    model = Column(String(80), nullable=True)
    type = Column(String(40), nullable=True)
    registration_number = Column(String(32), nullable=True)
    assigned_unit = Column(String(120), nullable=True)
    status = Column(String(32), default="active", nullable=False)
    mileage = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(String(64), primary_key=True, default=new_id)
    last_name = Column(String(80), nullable=True)
    first_name = Column(String(80), nullable=True)
    middle_name = Column(String(80), nullable=True)
    phone = Column(String(32), nullable=True)
    license_number = Column(String(32), nullable=True)
    license_category = Column(String(16), nullable=True)
    photo_url = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(200), nullable=True)
    position = Column(String(120), nullable=True)
    role = Column(
        Enum(Role, values_callable=_values, name="user_role"),
        default=Role.USER,
        nullable=False,
    )
    status = Column(
        Enum(UserStatus, values_callable=_values, name="user_status"),
        default=UserStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("idx_users_status", "status"),)


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(String(64), primary_key=True, default=new_id)
    driver_id = Column(String(64), nullable=False)
    vehicle_id = Column(String(64), nullable=False)
    request_id = Column(String(64), unique=True, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    distance_km = Column(Float, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_trips_driver", "driver_id"),
        Index("idx_trips_vehicle", "vehicle_id"),
    )


class RequestModel(Base):
    __tablename__ = "requests"

    id = Column(String(64), primary_key=True, default=new_id)
    vehicle_id = Column(String(64), nullable=False)
    driver_id = Column(String(64), nullable=False)
    origin = Column("from", String(255), nullable=False)
    destination = Column("to", String(255), nullable=False)
    depart_at = Column(DateTime(timezone=True), nullable=True)
    arrive_at = Column(DateTime(timezone=True), nullable=True)
    kilometers = Column(Integer, nullable=True)
    status = Column(
        Enum(RequestStatus, values_callable=_values, name="request_status"),
        default=RequestStatus.PLANNED,
        nullable=False,
    )
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_requests_status", "status"),
        Index("idx_requests_vehicle", "vehicle_id"),
        Index("idx_requests_driver", "driver_id"),
    )
