"""
Scriptly Backend — Chapter Service (Relationship Consistency Engine)
======================================================================

What:  Chapter CRUD plus the rules keeping User.chapter and
       Chapter.chapter_lead pointing at each other.
Who:   Chapter routes, and UserService after a profile update.

Invariant:
    chapter.chapter_lead_id == U.id  ⇒  U.chapter_id == chapter.id
    A user leads at most one chapter (UNIQUE on chapters.chapter_lead_id).

Lead assignment (user U becomes lead of chapter A):
    ┌───────────────┐   ┌──────────────────┐   ┌─────────────────────┐   ┌──────────────┐
    │ U not admin?  │──▶│ release A's old  │──▶│ clear any chapter B │──▶│ promote U,   │
    │ (else 400)    │   │ lead (guarded)   │   │ still led by U,     │   │ link U ⇄ A   │
    └───────────────┘   └──────────────────┘   │ flush               │   └──────────────┘
                                               └─────────────────────┘
    "Guarded" release: a user's chapter is cleared only while it still
    equals the chapter giving them up, so a reassignment that already
    happened elsewhere is never clobbered.

Transactions & concurrency:
    Everything runs inside the request's transaction (database.get_db_session),
    so the user row and the chapter row commit together or not at all.
    Rows taking part in a reassignment are read FOR UPDATE; two admins
    reassigning the same chapter serialize on PostgreSQL instead of
    interleaving. (SQLite, used in tests, ignores FOR UPDATE.)
"""

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scriptly.database import flush_or_conflict
from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scriptly.models.chapter import Chapter
from scriptly.models.enums import Role
from scriptly.models.event import Event, event_attendees
from scriptly.models.tutorial import Tutorial
from scriptly.models.user import User
from scriptly.schemas.chapter import (
    ChapterCreateRequest,
    ChapterDetailResponse,
    ChapterMember,
    ChapterUpdateRequest,
)
from scriptly.services import policy

logger = logging.getLogger(__name__)


class ChapterService:
    """
    Stateless; every method receives the request's session.

    Methods that change a chapter return it reloaded with `chapter_lead`
    populated, ready for ChapterResponse.
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_chapters(self, db: AsyncSession) -> Sequence[Chapter]:
        result = await db.execute(
            select(Chapter)
            .options(selectinload(Chapter.chapter_lead))
            .order_by(Chapter.name)
        )
        return result.scalars().all()

    async def get_chapter(self, db: AsyncSession, chapter_id: uuid.UUID) -> Chapter:
        chapter = await self._load(db, chapter_id)
        if chapter is None:
            raise NotFoundError("chapter")
        return chapter

    async def get_chapter_detail(
        self, db: AsyncSession, chapter_id: uuid.UUID
    ) -> ChapterDetailResponse:
        """Chapter, its lead, and every user whose chapter is this one."""
        chapter = await self.get_chapter(db, chapter_id)
        result = await db.execute(
            select(User).where(User.chapter_id == chapter.id).order_by(User.name)
        )
        detail = ChapterDetailResponse.model_validate(chapter)
        detail.members = [ChapterMember.model_validate(u) for u in result.scalars().all()]
        return detail

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_chapter(
        self,
        db: AsyncSession,
        actor: User,
        data: ChapterCreateRequest,
    ) -> Chapter:
        self._require_manager(actor)
        name = self._clean_name(data.name)
        await self._ensure_name_free(db, name)

        chapter = Chapter(name=name, description=(data.description or "").strip())
        db.add(chapter)
        # The chapter needs its row before a user can point at it
        await flush_or_conflict(db, f'Chapter "{name}" already exists.')
        logger.info("Chapter created: %s (%s)", chapter.id, name)

        if data.chapter_lead_id is not None:
            await self.assign_lead(db, chapter, data.chapter_lead_id)

        return await self._reload(db, chapter.id)

    async def update_chapter(
        self,
        db: AsyncSession,
        actor: User,
        chapter_id: uuid.UUID,
        data: ChapterUpdateRequest,
    ) -> Chapter:
        """
        Partial update. `chapter_lead_id` is only acted on when the request
        carries it: a UUID assigns (or re-assigns) the lead, null unassigns.
        """
        self._require_manager(actor)
        chapter = await self._load(db, chapter_id, lock=True)
        if chapter is None:
            raise NotFoundError("chapter")

        if "name" in data.model_fields_set:
            name = self._clean_name(data.name)
            if name != chapter.name:
                await self._ensure_name_free(db, name, exclude_id=chapter.id)
                chapter.name = name
        if "description" in data.model_fields_set:
            chapter.description = (data.description or "").strip()

        if "chapter_lead_id" in data.model_fields_set:
            if data.chapter_lead_id is None:
                await self.unassign_lead(db, chapter)
            else:
                await self.assign_lead(db, chapter, data.chapter_lead_id)

        await flush_or_conflict(db, f'Chapter "{chapter.name}" already exists.')
        return await self._reload(db, chapter.id)

    async def delete_chapter(
        self,
        db: AsyncSession,
        actor: User,
        chapter_id: uuid.UUID,
    ) -> str:
        """
        Deletes a chapter and everything hanging off it.

        Cascade order:
            1. Members (the lead included) lose their chapter
            2. Registrations for the chapter's events are dropped
            3. The chapter's events are deleted
            4. Tutorials filed under the chapter are detached
            5. The chapter row goes

        Returns the deleted chapter's name for the confirmation message.
        """
        self._require_manager(actor)
        chapter = await self._load(db, chapter_id, lock=True)
        if chapter is None:
            raise NotFoundError("chapter")
        name, lead_id = chapter.name, chapter.chapter_lead_id

        members = await db.execute(
            update(User).where(User.chapter_id == chapter.id).values(chapter_id=None)
        )
        chapter_events = select(Event.id).where(Event.chapter_id == chapter.id)
        await db.execute(
            delete(event_attendees).where(event_attendees.c.event_id.in_(chapter_events))
        )
        events = await db.execute(delete(Event).where(Event.chapter_id == chapter.id))
        tutorials = await db.execute(
            update(Tutorial).where(Tutorial.chapter_id == chapter.id).values(chapter_id=None)
        )
        await db.execute(delete(Chapter).where(Chapter.id == chapter.id))

        logger.info(
            "Chapter deleted: %s (%s); detached %d members, deleted %d events, "
            "detached %d tutorials, former lead %s",
            chapter_id, name, members.rowcount, events.rowcount,
            tutorials.rowcount, lead_id,
        )
        return name

    # ── Lead assignment ───────────────────────────────────────────────────

    async def assign_lead(
        self,
        db: AsyncSession,
        chapter: Chapter,
        user_id: uuid.UUID,
    ) -> User:
        """
        Makes `user_id` the lead of `chapter`.

        Raises:
            NotFoundError:   No such user
            ValidationError: The user is an admin
        """
        lead = await self._lock_user(db, user_id)
        if lead is None:
            raise NotFoundError("user", message="Chapter lead user not found.")
        if lead.role == Role.ADMIN:
            raise ValidationError(
                "An Admin cannot be assigned as a Chapter Lead.",
                field="chapterLeadId",
            )

        previous_id = chapter.chapter_lead_id
        if previous_id is not None and previous_id != lead.id:
            await self._release_user(db, chapter, previous_id)

        # Step down from any other chapter before taking this one; the
        # UNIQUE lead column rejects the new link until the old one is gone.
        result = await db.execute(
            select(Chapter)
            .where(Chapter.chapter_lead_id == lead.id, Chapter.id != chapter.id)
            .with_for_update()
        )
        stale = result.scalars().all()
        for other in stale:
            other.chapter_lead_id = None
            logger.info("Chapter %s lost lead %s (moved to %s)", other.id, lead.id, chapter.id)
        if stale:
            await db.flush()

        if lead.role == Role.STUDENT:
            lead.role = Role.CHAPTER_LEAD
            logger.info("User %s promoted to chapter-lead", lead.id)
        lead.chapter_id = chapter.id
        chapter.chapter_lead_id = lead.id
        await flush_or_conflict(db, "This user was just assigned to another chapter. Please retry.")

        logger.info("Chapter %s lead set to %s (previous: %s)", chapter.id, lead.id, previous_id)
        return lead

    async def unassign_lead(self, db: AsyncSession, chapter: Chapter) -> None:
        """Clears the chapter's lead; the former lead keeps their role."""
        previous_id = chapter.chapter_lead_id
        if previous_id is None:
            return
        await self._release_user(db, chapter, previous_id)
        chapter.chapter_lead_id = None
        await db.flush()
        logger.info("Chapter %s lead %s unassigned", chapter.id, previous_id)

    async def release_stale_lead(self, db: AsyncSession, user: User) -> Optional[Chapter]:
        """
        Re-checks the invariant after a user's role or chapter changed
        outside the lead-assignment path (profile update).

        If the user is recorded as a chapter's lead but is no longer a
        chapter-lead of that chapter, the chapter loses its lead.
        Returns the chapter that was released, if any.
        """
        result = await db.execute(
            select(Chapter).where(Chapter.chapter_lead_id == user.id).with_for_update()
        )
        chapter = result.scalars().first()
        if chapter is None:
            return None
        if user.role == Role.CHAPTER_LEAD and user.chapter_id == chapter.id:
            return None

        chapter.chapter_lead_id = None
        await db.flush()
        logger.info(
            "Chapter %s lost lead %s after profile update (role=%s, chapter=%s)",
            chapter.id, user.id, user.role.value, user.chapter_id,
        )
        return chapter

    # ── Internals ─────────────────────────────────────────────────────────

    async def _release_user(
        self, db: AsyncSession, chapter: Chapter, user_id: uuid.UUID
    ) -> None:
        user = await self._lock_user(db, user_id)
        if user is not None and user.chapter_id == chapter.id:
            user.chapter_id = None
            logger.info("User %s detached from chapter %s", user_id, chapter.id)

    @staticmethod
    async def _lock_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _load(
        db: AsyncSession, chapter_id: uuid.UUID, lock: bool = False
    ) -> Optional[Chapter]:
        stmt = (
            select(Chapter)
            .where(Chapter.id == chapter_id)
            .options(selectinload(Chapter.chapter_lead))
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _reload(self, db: AsyncSession, chapter_id: uuid.UUID) -> Chapter:
        chapter = await self._load(db, chapter_id)
        if chapter is None:
            raise NotFoundError("chapter")
        return chapter

    @staticmethod
    async def _ensure_name_free(
        db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        stmt = select(func.count()).select_from(Chapter).where(Chapter.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Chapter.id != exclude_id)
        if await db.scalar(stmt):
            raise ConflictError(f'Chapter "{name}" already exists.')

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Chapter name is required.", field="name")
        return cleaned

    @staticmethod
    def _require_manager(actor: User) -> None:
        if not policy.can_manage_chapters(actor):
            raise ForbiddenError("Only Admins can manage chapters.")


# Module-level singleton
chapter_service = ChapterService()
