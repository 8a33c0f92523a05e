"""Domain enumerations and state-transition rules."""

import enum


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class UserStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


class RequestStatus(str, enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    CANCELED = "canceled"


class EntityKind(str, enum.Enum):
    VEHICLE = "vehicle"
    DRIVER = "driver"
    TRIP = "trip"
    REQUEST = "request"
    USER = "user"


FLEET_KINDS = frozenset(
    {EntityKind.VEHICLE, EntityKind.DRIVER, EntityKind.TRIP, EntityKind.REQUEST}
)


# State machine: maps current status -> set of valid next statuses
REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PLANNED: {
        RequestStatus.IN_PROGRESS,
        RequestStatus.DONE,
        RequestStatus.CANCELED,
    },
    RequestStatus.IN_PROGRESS: {RequestStatus.DONE, RequestStatus.CANCELED},
    RequestStatus.DONE: set(),
    RequestStatus.CANCELED: set(),
}

# Registration decisions are one-way out of PENDING
USER_TRANSITIONS: dict[UserStatus, set[UserStatus]] = {
    UserStatus.PENDING: {UserStatus.ACTIVE, UserStatus.REJECTED},
    UserStatus.ACTIVE: set(),
    UserStatus.REJECTED: set(),
}


def is_terminal(status: RequestStatus) -> bool:
    return not REQUEST_TRANSITIONS[status]
