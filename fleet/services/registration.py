"""
Registration workflow.

Self-registration always yields ``role=user, status=pending``; the role a
client sends on the public path is ignored.  An admin or superadmin then
approves (pending -> active) or rejects (pending -> rejected) the account,
exactly once.  Only active accounts pass the identity resolver.
"""

from __future__ import annotations

import logging
from typing import Optional

from fleet.domain.entities import Identity, decide_registration
from fleet.domain.enums import EntityKind, Role, UserStatus
from fleet.domain.errors import Conflict, InvalidTransition, NotFound, ValidationError
from fleet.domain.policy import Action, authorize
from fleet.infrastructure.models import UserModel
from fleet.infrastructure.repositories import EntityStore
from fleet.services.identity import IdentityResolver

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def validate_password(password: Optional[str]) -> str:
    if not password:
        raise ValidationError("Email and password required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


class RegistrationWorkflow:
    def __init__(self, store: EntityStore, identities: IdentityResolver):
        self.store = store
        self.identities = identities

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        name: Optional[str] = None,
        position: Optional[str] = None,
    ) -> UserModel:
        if not email or not password:
            raise ValidationError("Email and password required")
        validate_password(password)
        if await self.store.users.get_by_email(email) is not None:
            raise Conflict("User already exists")

        user = await self.store.users.create(
            email=email,
            password_hash=self.identities.hash_password(password),
            name=name,
            position=position,
            role=Role.USER,
            status=UserStatus.PENDING,
        )
        logger.info("Registered %s as pending user %s", email, user.id)
        return user

    async def list_pending(self, identity: Identity) -> list[UserModel]:
        authorize(identity, Action.LIST, EntityKind.USER)
        return await self.store.users.list_pending()

    async def approve(self, identity: Identity, user_id: str) -> UserModel:
        return await self._decide(identity, user_id, UserStatus.ACTIVE)

    async def reject(self, identity: Identity, user_id: str) -> UserModel:
        return await self._decide(identity, user_id, UserStatus.REJECTED)

    async def _decide(
        self, identity: Identity, user_id: str, target: UserStatus
    ) -> UserModel:
        authorize(identity, Action.DECIDE, EntityKind.USER, owner_id=user_id)
        user = await self.store.users.get_by_id(user_id, refresh=True)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        current = UserStatus(user.status)
        decide_registration(current, target)

        # a concurrent decision may have landed since the read
        if not await self.store.users.decide(user_id, current, target):
            user = await self.store.users.get_by_id(user_id, refresh=True)
            if user is None:
                raise NotFound(f"User {user_id} not found")
            decide_registration(UserStatus(user.status), target)
            raise InvalidTransition(f"User {user_id} was decided concurrently")
        user = await self.store.users.get_by_id(user_id, refresh=True)
        logger.info(
            "User %s %s by %s",
            user_id,
            "approved" if target == UserStatus.ACTIVE else "rejected",
            identity.id,
        )
        return user
