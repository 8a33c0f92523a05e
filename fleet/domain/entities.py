"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``TransportRequest``: enforces valid lifecycle
  transitions (planned -> in-progress -> done | canceled).
- ``decide_registration`` applies the one-way pending -> active | rejected
  rule for new accounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .enums import (
    REQUEST_TRANSITIONS,
    USER_TRANSITIONS,
    RequestStatus,
    Role,
    UserStatus,
    is_terminal,
)
from .errors import InvalidTransition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Identity:
    """A verified caller: always resolved from the store, never the client."""

    id: str
    role: Role
    email: Optional[str] = None


@dataclass(frozen=True)
class TripDraft:
    request_id: str
    driver_id: str
    vehicle_id: str
    date: datetime
    distance_km: int
    notes: str


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class TransportRequest:
    id: str
    vehicle_id: str
    driver_id: str
    origin: str = ""
    destination: str = ""
    depart_at: Optional[datetime] = None
    arrive_at: Optional[datetime] = None
    kilometers: Optional[int] = None
    status: RequestStatus = RequestStatus.PLANNED
    notes: Optional[str] = None

    @classmethod
    def from_model(cls, model: Any) -> "TransportRequest":
        return cls(
            id=model.id,
            vehicle_id=model.vehicle_id,
            driver_id=model.driver_id,
            origin=model.origin,
            destination=model.destination,
            depart_at=model.depart_at,
            arrive_at=model.arrive_at,
            kilometers=model.kilometers,
            status=RequestStatus(model.status),
            notes=model.notes,
        )

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def ensure_mutable(self) -> None:
        if self.is_terminal:
            raise InvalidTransition(
                f"Request {self.id} is {self.status.value} and read-only"
            )

    def transition_to(self, new_status: RequestStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        self.ensure_mutable()
        if new_status == self.status:
            return
        allowed = REQUEST_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def route_summary(self) -> str:
        return f"{self.origin} → {self.destination}"


def decide_registration(current: UserStatus, target: UserStatus) -> UserStatus:
    if target not in USER_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"Cannot move account from {current.value} to {target.value}"
        )
    return target
