"""
Scriptly Backend — User Service
=================================

What:  User listing/lookup and the profile update operation.
Who:   /api/users routes, AuthService (profile), VouchService.

Profile update:
    The Authorization Policy decides whether the actor may touch the
    requested fields (see policy.user_update_denial). After the write,
    ChapterService re-checks the lead invariant, because changing a
    lead's role or chapter here must also release the chapter they led.
"""

import logging
import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scriptly.database import flush_or_conflict
from scriptly.exceptions import ForbiddenError, NotFoundError, ValidationError
from scriptly.models.chapter import Chapter
from scriptly.models.user import User
from scriptly.schemas.user import UserUpdateRequest
from scriptly.services import policy
from scriptly.services.chapter_service import chapter_service

logger = logging.getLogger(__name__)

# Everything UserResponse renders
USER_LOAD_OPTIONS = (
    selectinload(User.chapter),
    selectinload(User.vouched_by),
)

_PROFILE_FIELDS = frozenset({"name", "role", "chapter_id"})


class UserService:

    async def list_users(self, db: AsyncSession) -> Sequence[User]:
        result = await db.execute(
            select(User).options(*USER_LOAD_OPTIONS).order_by(User.created_at)
        )
        return result.scalars().all()

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        """Loads a user with chapter and vouchers, refreshing any cached copy."""
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .options(*USER_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("user", context={"resource_id": str(user_id)})
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        actor: User,
        user_id: uuid.UUID,
        data: UserUpdateRequest,
    ) -> User:
        """
        Applies name / role / chapter changes to a user.

        Raises:
            ValidationError: Nothing to update, or an empty name/role
            NotFoundError:   Unknown user or chapter
            ForbiddenError:  The policy refuses the change
        """
        fields = data.model_fields_set & _PROFILE_FIELDS
        if not fields:
            raise ValidationError("Please provide at least one field to update.")

        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        target = result.scalar_one_or_none()
        if target is None:
            raise NotFoundError("user", context={"resource_id": str(user_id)})

        denial = policy.user_update_denial(actor, target, fields, data.role)
        if denial:
            raise ForbiddenError(denial, context={"actor": str(actor.id), "target": str(user_id)})

        if "name" in fields:
            name = (data.name or "").strip()
            if not name:
                raise ValidationError("Name cannot be empty.", field="name")
            target.name = name

        if "role" in fields:
            if data.role is None:
                raise ValidationError("Role cannot be empty.", field="role")
            if data.role != target.role:
                logger.info("User %s role %s -> %s by %s",
                            target.id, target.role.value, data.role.value, actor.id)
            target.role = data.role

        if "chapter_id" in fields:
            if data.chapter_id is not None and await db.get(Chapter, data.chapter_id) is None:
                raise NotFoundError("chapter", message="Chapter not found for assignment.")
            target.chapter_id = data.chapter_id

        await flush_or_conflict(db, "User was modified concurrently. Please retry.")
        await chapter_service.release_stale_lead(db, target)

        return await self.get_user(db, target.id)


# Module-level singleton
user_service = UserService()
