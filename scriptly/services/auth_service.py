"""
Scriptly Backend — Auth Service (Identity & Session Layer)
============================================================

What:  Registration, login, token resolution, password change and the
       bootstrap admin account.
Who:   /api/auth routes, the auth dependencies, and the app lifespan.

Token resolution errors (all 401, distinguished by `error` code):
    token_missing    no Bearer credential          (raised in routes/deps.py)
    token_invalid    bad signature / expired / malformed
    user_not_found   valid token for a user that no longer exists
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.config import settings
from scriptly.database import flush_or_conflict
from scriptly.exceptions import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from scriptly.models.enums import Role
from scriptly.models.user import User
from scriptly.schemas.auth import LoginRequest, RegisterRequest
from scriptly.schemas.user import PasswordChangeRequest
from scriptly.services import policy
from scriptly.services.chapter_service import chapter_service
from scriptly.services.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from scriptly.services.user_service import user_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:

    async def register(self, db: AsyncSession, data: RegisterRequest) -> Tuple[User, str]:
        """Creates a student account and signs them in."""
        name = data.name.strip()
        email = normalize_email(data.email)
        if not name or not email or not data.password:
            raise ValidationError("Please provide name, email and password.")

        if await self._find_by_email(db, email) is not None:
            raise ConflictError("User already exists")

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(data.password),
            role=Role.STUDENT,
            vouch_count=0,
        )
        db.add(user)
        await flush_or_conflict(db, "User already exists")
        logger.info("User registered: %s", user.id)

        user = await user_service.get_user(db, user.id)
        return user, create_access_token(user.id, user.role)

    async def login(self, db: AsyncSession, data: LoginRequest) -> Tuple[User, str]:
        user = await self._find_by_email(db, normalize_email(data.email))
        # Same error for unknown email and wrong password
        if user is None or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials", code="invalid_credentials")

        user = await user_service.get_user(db, user.id)
        return user, create_access_token(user.id, user.role)

    async def resolve_token(self, db: AsyncSession, token: str) -> User:
        """Turns a bearer token into the current user, read fresh from the DB."""
        claims = decode_access_token(token)
        user = await db.get(User, claims["id"])
        if user is None:
            raise UnauthorizedError("Not authorized, user not found", code="user_not_found")
        return user

    async def profile(self, db: AsyncSession, actor: User) -> User:
        return await user_service.get_user(db, actor.id)

    async def change_password(
        self,
        db: AsyncSession,
        actor: User,
        user_id: uuid.UUID,
        data: PasswordChangeRequest,
    ) -> None:
        if not policy.can_change_password(actor, user_id):
            raise ForbiddenError("Not authorized to change this user's password.")
        if not data.old_password or not data.new_password:
            raise ValidationError("Please provide both old and new passwords.")
        if len(data.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters long.",
                field="newPassword",
            )
        if not verify_password(data.old_password, actor.password_hash):
            raise UnauthorizedError("Old password is incorrect.", code="invalid_credentials")

        actor.password_hash = hash_password(data.new_password)
        await db.flush()
        logger.info("Password changed for user %s", actor.id)

    async def ensure_admin(self, db: AsyncSession) -> Optional[User]:
        """
        Makes sure the configured bootstrap admin exists.

        Registration never grants admin, so this is how the first admin
        account comes to be. An existing account with that email is
        promoted; its password is left untouched.
        """
        if not settings.admin_email or not settings.admin_password:
            return None

        email = normalize_email(settings.admin_email)
        user = await self._find_by_email(db, email)
        if user is None:
            user = User(
                name=settings.admin_name,
                email=email,
                password_hash=hash_password(settings.admin_password),
                role=Role.ADMIN,
                vouch_count=0,
            )
            db.add(user)
            await db.flush()
            logger.info("Bootstrap admin created: %s", email)
        elif user.role != Role.ADMIN:
            user.role = Role.ADMIN
            await db.flush()
            # An admin cannot lead a chapter
            await chapter_service.release_stale_lead(db, user)
            logger.info("Existing user %s promoted to bootstrap admin", email)
        return user

    @staticmethod
    async def _find_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


# Module-level singleton
auth_service = AuthService()
