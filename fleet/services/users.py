"""User management: superadmin CRUD, self-service profile and bootstrap."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fleet.domain.entities import Identity
from fleet.domain.enums import EntityKind, Role, UserStatus
from fleet.domain.errors import Conflict, NotFound, ValidationError
from fleet.domain.policy import Action, authorize
from fleet.infrastructure.models import UserModel
from fleet.infrastructure.repositories import EntityStore, normalize_email
from fleet.services.identity import IdentityResolver
from fleet.services.registration import validate_password

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = ("email", "password", "role", "status")


class UserService:
    def __init__(self, store: EntityStore, identities: IdentityResolver):
        self.store = store
        self.identities = identities

    async def list_users(self, identity: Identity) -> list[UserModel]:
        authorize(identity, Action.LIST, EntityKind.USER)
        return await self.store.users.find()

    async def get_user(self, identity: Identity, user_id: str) -> UserModel:
        authorize(identity, Action.READ, EntityKind.USER, owner_id=user_id)
        user = await self.store.users.get_by_id(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    async def create_user(
        self, identity: Identity, fields: Mapping[str, Any]
    ) -> UserModel:
        authorize(identity, Action.CREATE, EntityKind.USER)
        data = dict(fields)
        password = validate_password(data.pop("password", None))
        email = data.get("email")
        if not email:
            raise ValidationError("Email and password required")
        if await self.store.users.get_by_email(email) is not None:
            raise Conflict("User already exists")

        data.setdefault("role", Role.USER)
        # accounts created by a superadmin skip the registration queue
        if data.get("status") is None:
            data["status"] = UserStatus.ACTIVE
        user = await self.store.users.create(
            password_hash=self.identities.hash_password(password), **data
        )
        logger.info("User %s (%s) created by %s", user.id, user.role, identity.id)
        return user

    async def update_user(
        self, identity: Identity, user_id: str, patch: Mapping[str, Any]
    ) -> UserModel:
        # the policy decides on the full field set before anything is written
        authorize(
            identity, Action.UPDATE, EntityKind.USER, owner_id=user_id, fields=patch
        )
        cleared = [k for k in NON_NULLABLE_FIELDS if k in patch and patch[k] is None]
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

        user = await self.store.users.get_by_id(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")

        changes = dict(patch)
        if "password" in changes:
            changes["password_hash"] = self.identities.hash_password(
                validate_password(changes.pop("password"))
            )
        email = changes.get("email")
        if email and normalize_email(email) != user.email:
            if await self.store.users.get_by_email(email) is not None:
                raise Conflict("User already exists")

        return await self.store.users.update(user_id, **changes)

    async def delete_user(self, identity: Identity, user_id: str) -> None:
        authorize(identity, Action.DELETE, EntityKind.USER, owner_id=user_id)
        if not await self.store.users.delete(user_id):
            raise NotFound(f"User {user_id} not found")
        logger.info("User %s deleted by %s", user_id, identity.id)

    async def ensure_superadmin(
        self, email: Optional[str], password: Optional[str]
    ) -> Optional[UserModel]:
        """Create the bootstrap superadmin unless the email is taken."""
        if not email or not password:
            return None
        existing = await self.store.users.get_by_email(email)
        if existing is not None:
            return existing
        user = await self.store.users.create(
            email=email,
            password_hash=self.identities.hash_password(password),
            name="Superadmin",
            role=Role.SUPERADMIN,
            status=UserStatus.ACTIVE,
        )
        logger.info("Bootstrap superadmin %s created", email)
        return user
