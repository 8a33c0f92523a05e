"""
Authorization policy.

A pure, data-driven decision: ``(role, entity kind) -> {action -> Grant}``.
A grant names a scope (nobody's record, the caller's own record, any
record) and, for updates, the set of fields that may be touched.  An update
touching a field outside the set is denied as a whole.

    user        fleet CRUD; own user record, every field but role/status
    admin       fleet CRUD; read any user, update only ``position``, decide
    superadmin  everything
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .entities import Identity
from .enums import FLEET_KINDS, EntityKind, Role
from .errors import Forbidden

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    DECIDE = "decide"  # approve / reject a registration


class Scope(str, enum.Enum):
    NONE = "none"
    OWN = "own"
    ANY = "any"


@dataclass(frozen=True)
class Grant:
    scope: Scope
    fields: Optional[frozenset[str]] = None  # None: any field

    def permits_fields(self, fields: Iterable[str]) -> bool:
        return self.fields is None or set(fields) <= self.fields


DENY = Grant(Scope.NONE)
ANY = Grant(Scope.ANY)

USER_FIELDS = frozenset({"email", "password", "name", "position", "role", "status"})
PRIVILEGED_USER_FIELDS = frozenset({"role", "status"})

_FLEET_GRANTS = {
    Action.LIST: ANY,
    Action.READ: ANY,
    Action.CREATE: ANY,
    Action.UPDATE: ANY,
    Action.DELETE: ANY,
}

_USER_GRANTS: dict[Role, dict[Action, Grant]] = {
    Role.USER: {
        Action.LIST: Grant(Scope.OWN),
        Action.READ: Grant(Scope.OWN),
        Action.UPDATE: Grant(Scope.OWN, USER_FIELDS - PRIVILEGED_USER_FIELDS),
    },
    Role.ADMIN: {
        Action.LIST: ANY,
        Action.READ: ANY,
        Action.UPDATE: Grant(Scope.ANY, frozenset({"position"})),
        Action.DECIDE: ANY,
    },
    Role.SUPERADMIN: {
        Action.LIST: ANY,
        Action.READ: ANY,
        Action.CREATE: ANY,
        Action.UPDATE: ANY,
        Action.DELETE: ANY,
        Action.DECIDE: ANY,
    },
}

POLICY: dict[tuple[Role, EntityKind], dict[Action, Grant]] = {
    **{(role, kind): _FLEET_GRANTS for role in Role for kind in FLEET_KINDS},
    **{(role, EntityKind.USER): grants for role, grants in _USER_GRANTS.items()},
}


def grant_for(role: Role, action: Action, kind: EntityKind) -> Grant:
    return POLICY.get((role, kind), {}).get(action, DENY)


def is_allowed(
    identity: Identity,
    action: Action,
    kind: EntityKind,
    owner_id: Optional[str] = None,
    fields: Optional[Iterable[str]] = None,
) -> bool:
    grant = grant_for(identity.role, action, kind)
    if grant.scope == Scope.NONE:
        return False
    if grant.scope == Scope.OWN and (owner_id is None or owner_id != identity.id):
        return False
    if fields is not None and not grant.permits_fields(fields):
        return False
    return True


def authorize(
    identity: Identity,
    action: Action,
    kind: EntityKind,
    owner_id: Optional[str] = None,
    fields: Optional[Iterable[str]] = None,
) -> None:
    """Raise ``Forbidden`` unless *identity* may perform *action*."""
    if fields is not None:
        fields = frozenset(fields)
    if not is_allowed(identity, action, kind, owner_id, fields):
        logger.warning(
            "Denied %s %s for %s (%s) on owner=%s fields=%s",
            action.value,
            kind.value,
            identity.id,
            identity.role.value,
            owner_id,
            sorted(fields) if fields is not None else None,
        )
        raise Forbidden(f"Not allowed to {action.value} {kind.value}")
