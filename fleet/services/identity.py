"""
Identity resolution.

Turns a bearer token or an email/password pair into an ``Identity``.  The
role always comes from the stored user record: tokens carry the user id
only, so a demoted, rejected or deleted account stops working at once.
Read-only against the users table.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from fleet.config import Settings
from fleet.domain.entities import Identity
from fleet.domain.enums import Role, UserStatus
from fleet.domain.errors import (
    AccountNotActive,
    InvalidCredentials,
    Unauthenticated,
    UnknownUser,
    ValidationError,
)
from fleet.infrastructure.models import UserModel
from fleet.infrastructure.repositories import EntityStore

logger = logging.getLogger(__name__)

_contexts: dict[tuple[str, ...], CryptContext] = {}


def password_context(schemes: list[str]) -> CryptContext:
    key = tuple(schemes)
    if key not in _contexts:
        _contexts[key] = CryptContext(schemes=list(schemes), deprecated="auto")
    return _contexts[key]


def identity_of(user: UserModel) -> Identity:
    return Identity(id=user.id, role=Role(user.role), email=user.email)


class IdentityResolver:
    def __init__(self, store: EntityStore, settings: Settings):
        self.store = store
        self.settings = settings
        self.passwords = password_context(settings.password_schemes)

    # ── Passwords ─────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        return self.passwords.hash(password)

    def verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        return self.passwords.verify(password, password_hash)

    # ── Tokens ────────────────────────────────────────────────────

    def issue_token(self, identity: Identity) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": identity.id,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.access_token_expire_minutes),
        }
        return jwt.encode(
            payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm
        )

    async def resolve_token(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthenticated("Missing bearer token")
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.info("Rejected bearer token: %s", e)
            raise Unauthenticated("Invalid authentication token")

        user_id = payload.get("sub")
        user = await self.store.users.get_by_id(user_id) if user_id else None
        if user is None or UserStatus(user.status) != UserStatus.ACTIVE:
            raise Unauthenticated("Invalid authentication token")
        return identity_of(user)

    # ── Credentials ───────────────────────────────────────────────

    async def authenticate(self, email: Optional[str], password: Optional[str]) -> Identity:
        """Check credentials; the password is verified before the status."""
        if not email or not password:
            raise ValidationError("Email and password required")
        user = await self.store.users.get_by_email(email)
        if user is None:
            raise UnknownUser("User not found")
        if not self.verify_password(password, user.password_hash):
            raise InvalidCredentials("Invalid credentials")
        if UserStatus(user.status) != UserStatus.ACTIVE:
            raise AccountNotActive("Account not active")
        return identity_of(user)
