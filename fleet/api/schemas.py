"""Pydantic request / response schemas for the REST API.

The wire format is camelCase (``vehicleId``, ``departAt``); attributes are
snake_case and map 1:1 onto the ORM models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from fleet.domain.enums import RequestStatus, Role, UserStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def changes(self) -> dict:
        """Fields the client actually sent, by attribute name."""
        return self.model_dump(exclude_unset=True)


# ── Vehicles ──────────────────────────────────────────────────────────


class VehicleCreate(CamelModel):
    id: Optional[str] = Field(None, max_length=64)
    make: Optional[str] = None
    model: Optional[str] = None
    type: Optional[str] = None
    registration_number: Optional[str] = None
    assigned_unit: Optional[str] = None
    status: str = "active"
    mileage: int = Field(0, ge=0)


class VehicleUpdate(CamelModel):
    make: Optional[str] = None
    model: Optional[str] = None
    type: Optional[str] = None
    registration_number: Optional[str] = None
    assigned_unit: Optional[str] = None
    status: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)


class VehicleResponse(CamelModel):
    id: str
    make: Optional[str] = None
    model: Optional[str] = None
    type: Optional[str] = None
    registration_number: Optional[str] = None
    assigned_unit: Optional[str] = None
    status: str
    mileage: int
    created_at: Optional[datetime] = None


# ── Drivers ───────────────────────────────────────────────────────────


class DriverCreate(CamelModel):
    id: Optional[str] = Field(None, max_length=64)
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    license_category: Optional[str] = None
    photo_url: Optional[str] = None


class DriverUpdate(CamelModel):
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    license_category: Optional[str] = None
    photo_url: Optional[str] = None


class DriverResponse(DriverCreate):
    id: str
    created_at: Optional[datetime] = None


# ── Trips ─────────────────────────────────────────────────────────────


class TripCreate(CamelModel):
    id: Optional[str] = Field(None, max_length=64)
    driver_id: str
    vehicle_id: str
    date: Optional[datetime] = None
    distance_km: float = Field(0, ge=0)
    notes: Optional[str] = None


class TripUpdate(CamelModel):
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    date: Optional[datetime] = None
    distance_km: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class TripResponse(CamelModel):
    id: str
    driver_id: str
    vehicle_id: str
    request_id: Optional[str] = None
    date: datetime
    distance_km: float
    notes: Optional[str] = None


# ── Requests ──────────────────────────────────────────────────────────


class RequestCreate(CamelModel):
    id: Optional[str] = Field(None, max_length=64)
    vehicle_id: str
    driver_id: str
    origin: str = Field(..., alias="from")
    destination: str = Field(..., alias="to")
    depart_at: datetime
    arrive_at: Optional[datetime] = None
    kilometers: Optional[int] = Field(None, ge=0)
    status: Optional[RequestStatus] = None
    notes: Optional[str] = None


class RequestUpdate(CamelModel):
    vehicle_id: Optional[str] = None
    driver_id: Optional[str] = None
    origin: Optional[str] = Field(None, alias="from")
    destination: Optional[str] = Field(None, alias="to")
    depart_at: Optional[datetime] = None
    arrive_at: Optional[datetime] = None
    kilometers: Optional[int] = Field(None, ge=0)
    status: Optional[RequestStatus] = None
    notes: Optional[str] = None


class RequestResponse(CamelModel):
    id: str
    vehicle_id: str
    driver_id: str
    origin: str = Field(..., alias="from")
    destination: str = Field(..., alias="to")
    depart_at: Optional[datetime] = None
    arrive_at: Optional[datetime] = None
    kilometers: Optional[int] = None
    status: RequestStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# ── Users & auth ──────────────────────────────────────────────────────


class UserCreate(CamelModel):
    id: Optional[str] = Field(None, max_length=64)
    email: EmailStr
    password: str
    name: Optional[str] = None
    position: Optional[str] = None
    role: Role = Role.USER
    status: Optional[UserStatus] = None


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    position: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[UserStatus] = None


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    position: Optional[str] = None
    role: Role
    status: UserStatus
    created_at: Optional[datetime] = None


class RegisterRequest(CamelModel):
    """Public sign-up.  Any role or status the client sends is dropped."""

    email: EmailStr
    password: str
    name: Optional[str] = None
    position: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    kind: str
    detail: str
