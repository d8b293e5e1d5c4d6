"""
Scriptly Backend — Vouch Service
==================================

What:  One-way, non-retractable endorsements between users.

Invariant:
    user.vouch_count == number of user_vouches rows for that user.
    The counter and the row change in the same flush of the same
    transaction; the composite primary key on user_vouches rejects a
    duplicate pair even when two requests race past the membership check.

Check order (first failure wins):
    self-vouch → 400, missing user → 404, policy → 403, duplicate → 409
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scriptly.database import flush_or_conflict
from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scriptly.models.user import User
from scriptly.services import policy

logger = logging.getLogger(__name__)

ALREADY_VOUCHED = "You have already vouched for this user"


class VouchService:

    async def vouch(self, db: AsyncSession, actor: User, target_id: uuid.UUID) -> User:
        """
        Records that `actor` vouches for the user `target_id`.

        Returns the target with its updated vouch_count.
        """
        if actor.id == target_id:
            raise ValidationError("Cannot vouch for yourself")

        result = await db.execute(
            select(User)
            .where(User.id == target_id)
            .options(selectinload(User.vouched_by))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        target = result.scalar_one_or_none()
        if target is None:
            raise NotFoundError("user", context={"resource_id": str(target_id)})

        # Re-read the voucher: role and chapter may have changed since the
        # token was issued
        voucher = await db.get(User, actor.id, populate_existing=True)
        if voucher is None:
            raise NotFoundError("user", message="Voucher not found")

        if not policy.can_vouch(voucher, target):
            raise ForbiddenError(
                policy.vouch_denial(voucher),
                context={"voucher": str(voucher.id), "target": str(target.id)},
            )

        if any(existing.id == voucher.id for existing in target.vouched_by):
            raise ConflictError(ALREADY_VOUCHED)

        target.vouched_by.append(voucher)
        target.vouch_count += 1
        await flush_or_conflict(db, ALREADY_VOUCHED)

        logger.info("User %s vouched for %s (count=%d)", voucher.id, target.id, target.vouch_count)
        return target


# Module-level singleton
vouch_service = VouchService()
