"""
Scriptly Backend — Tutorial Service (Tutorial Workflow Engine)
================================================================

What:  Tutorial CRUD, the approval state machine, and visibility rules.

State machine (pending, approved, rejected):

    pending ──approve──▶ approved ──reject──▶ rejected
       ▲                    │                    │
       └──── author edit ───┴──── author edit ───┘

    - Created `approved` when the author is an admin, else `pending`.
    - approve/reject into the state a tutorial is already in → 409.
    - An edit by the author (not an admin) of an approved or rejected
      tutorial sends it back to `pending` for re-review.
    - Only admins write `status` explicitly. A non-admin sending a status
      is refused outright, even `pending`; editing content is the author's
      only route back into review.
    - An admin edit keeps the current status unless the admin sends one.

Visibility:
    Non-admin readers (anonymous included) only ever see `approved`
    tutorials in listings; a single non-approved tutorial is visible to
    its author and to admins.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import String, column, delete, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scriptly.models.category import Category
from scriptly.models.chapter import Chapter
from scriptly.models.enums import TutorialStatus
from scriptly.models.tutorial import Tutorial
from scriptly.models.user import User
from scriptly.schemas.tutorial import TutorialCreateRequest, TutorialUpdateRequest
from scriptly.services import policy

logger = logging.getLogger(__name__)

TUTORIAL_LOAD_OPTIONS = (
    selectinload(Tutorial.author),
    selectinload(Tutorial.category),
    selectinload(Tutorial.chapter),
)

_CONTENT_FIELDS = frozenset({"title", "content", "category_id", "chapter_id", "keywords"})
_REVIEWED = (TutorialStatus.APPROVED, TutorialStatus.REJECTED)

STATUS_FILTER_ALL = "all"


def normalize_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    """Trimmed, lowercase, blanks dropped, first occurrence kept."""
    seen: List[str] = []
    for keyword in keywords or []:
        cleaned = keyword.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _keyword_matches(dialect_name: str, pattern: str):
    """EXISTS over the individual elements of Tutorial.keywords, not its JSON text."""
    if dialect_name == "postgresql":
        elements = func.json_array_elements_text(Tutorial.keywords)
    else:
        elements = func.json_each(Tutorial.keywords)
    keyword = elements.table_valued(column("value", String)).alias("keyword")
    return exists(
        select(keyword.c.value).select_from(keyword).where(keyword.c.value.like(pattern, escape="\\"))
    )


class TutorialService:

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_tutorials(
        self,
        db: AsyncSession,
        viewer: Optional[User] = None,
        category_id: Optional[uuid.UUID] = None,
        author_id: Optional[uuid.UUID] = None,
        chapter_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Tutorial]:
        """
        Filtered listing, newest first. Filters combine with AND.

        `status` is honoured for admins only ("all" or None = every status);
        everyone else gets approved tutorials whatever they ask for.
        """
        stmt = select(Tutorial).options(*TUTORIAL_LOAD_OPTIONS)

        if policy.is_admin(viewer):
            if status and status != STATUS_FILTER_ALL:
                try:
                    wanted = TutorialStatus(status)
                except ValueError:
                    raise ValidationError(
                        f"Invalid status '{status}'. Must be one of: "
                        f"{', '.join(s.value for s in TutorialStatus)}, {STATUS_FILTER_ALL}",
                        field="status",
                    )
                stmt = stmt.where(Tutorial.status == wanted)
        else:
            stmt = stmt.where(Tutorial.status == TutorialStatus.APPROVED)

        if category_id is not None:
            stmt = stmt.where(Tutorial.category_id == category_id)
        if author_id is not None:
            stmt = stmt.where(Tutorial.author_id == author_id)
        if chapter_id is not None:
            stmt = stmt.where(Tutorial.chapter_id == chapter_id)

        term = (search or "").strip()
        if term:
            pattern = f"%{_escape_like(term)}%"
            # Keywords are stored lowercase, so lowering the term here covers
            # non-ASCII letters that SQLite's lower() leaves alone.
            keyword_pattern = f"%{_escape_like(term.lower())}%"
            stmt = stmt.where(or_(
                Tutorial.title.ilike(pattern, escape="\\"),
                Tutorial.content.ilike(pattern, escape="\\"),
                _keyword_matches(db.bind.dialect.name, keyword_pattern),
            ))

        result = await db.execute(stmt.order_by(Tutorial.created_at.desc()))
        return result.scalars().all()

    async def get_tutorial(
        self,
        db: AsyncSession,
        viewer: Optional[User],
        tutorial_id: uuid.UUID,
    ) -> Tutorial:
        tutorial = await self._load(db, tutorial_id)
        if tutorial is None:
            raise NotFoundError("tutorial")
        if not policy.can_view_tutorial(viewer, tutorial):
            raise ForbiddenError("Not authorized to view this tutorial (pending or rejected).")
        return tutorial

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_tutorial(
        self,
        db: AsyncSession,
        author: User,
        data: TutorialCreateRequest,
    ) -> Tutorial:
        title = (data.title or "").strip()
        content = (data.content or "").strip()
        if not title or not content:
            raise ValidationError("Please provide title, content and category.")

        await self._require_category(db, data.category_id)
        if data.chapter_id is not None:
            await self._require_chapter(db, data.chapter_id)

        status = TutorialStatus.APPROVED if policy.is_admin(author) else TutorialStatus.PENDING
        tutorial = Tutorial(
            title=title,
            content=content,
            category_id=data.category_id,
            chapter_id=data.chapter_id,
            author_id=author.id,
            status=status,
            keywords=normalize_keywords(data.keywords),
        )
        db.add(tutorial)
        await db.flush()
        logger.info("Tutorial created: %s by %s (status=%s)", tutorial.id, author.id, status.value)
        return await self._reload(db, tutorial.id)

    async def update_tutorial(
        self,
        db: AsyncSession,
        actor: User,
        tutorial_id: uuid.UUID,
        data: TutorialUpdateRequest,
    ) -> Tutorial:
        """
        Applies the fields present in `data`.

        Raises:
            NotFoundError:   Unknown tutorial, category or chapter
            ForbiddenError:  Actor is neither author nor admin, or a
                             non-admin sent a status
            ValidationError: Empty change set, or a required field blanked
        """
        tutorial = await self._load(db, tutorial_id, lock=True)
        if tutorial is None:
            raise NotFoundError("tutorial")
        if not policy.can_manage_tutorial(actor, tutorial):
            raise ForbiddenError("Not authorized to update this tutorial.")

        fields = data.model_fields_set & (_CONTENT_FIELDS | {"status"})
        if not fields:
            raise ValidationError("Please provide at least one field to update.")

        actor_is_admin = policy.is_admin(actor)
        if "status" in fields and not actor_is_admin:
            if data.status is not None and not policy.can_set_tutorial_status(actor, data.status):
                raise ForbiddenError("Only Admins can approve or reject tutorials.")
            raise ForbiddenError("Authors cannot set tutorial status directly.")

        for field in ("title", "content"):
            if field in fields:
                value = (getattr(data, field) or "").strip()
                if not value:
                    raise ValidationError(f"Tutorial {field} cannot be empty.", field=field)
                setattr(tutorial, field, value)
        if "category_id" in fields:
            if data.category_id is None:
                raise ValidationError("A tutorial must have a category.", field="categoryId")
            await self._require_category(db, data.category_id)
            tutorial.category_id = data.category_id
        if "chapter_id" in fields:
            if data.chapter_id is not None:
                await self._require_chapter(db, data.chapter_id)
            tutorial.chapter_id = data.chapter_id
        if "keywords" in fields:
            tutorial.keywords = normalize_keywords(data.keywords)

        previous = tutorial.status
        if actor_is_admin:
            if "status" in fields:
                if data.status is None:
                    raise ValidationError("Status cannot be empty.", field="status")
                tutorial.status = data.status
        elif previous in _REVIEWED:
            tutorial.status = TutorialStatus.PENDING

        await db.flush()
        if tutorial.status != previous:
            logger.info("Tutorial %s status %s -> %s (edit by %s)",
                        tutorial.id, previous.value, tutorial.status.value, actor.id)
        return await self._reload(db, tutorial.id)

    async def set_status(
        self,
        db: AsyncSession,
        actor: User,
        tutorial_id: uuid.UUID,
        new_status: TutorialStatus,
    ) -> Tutorial:
        """Explicit admin transition (approve / reject)."""
        if not policy.can_set_tutorial_status(actor, new_status):
            raise ForbiddenError("Only Admins can approve or reject tutorials.")

        tutorial = await self._load(db, tutorial_id, lock=True)
        if tutorial is None:
            raise NotFoundError("tutorial")
        if tutorial.status == new_status:
            raise ConflictError(f"Tutorial is already {new_status.value}.")

        previous = tutorial.status
        tutorial.status = new_status
        await db.flush()
        logger.info("Tutorial %s status %s -> %s by %s",
                    tutorial.id, previous.value, new_status.value, actor.id)
        return await self._reload(db, tutorial.id)

    async def approve(self, db: AsyncSession, actor: User, tutorial_id: uuid.UUID) -> Tutorial:
        return await self.set_status(db, actor, tutorial_id, TutorialStatus.APPROVED)

    async def reject(self, db: AsyncSession, actor: User, tutorial_id: uuid.UUID) -> Tutorial:
        return await self.set_status(db, actor, tutorial_id, TutorialStatus.REJECTED)

    async def delete_tutorial(
        self, db: AsyncSession, actor: User, tutorial_id: uuid.UUID
    ) -> None:
        if await db.get(Tutorial, tutorial_id) is None:
            raise NotFoundError("tutorial")
        if not policy.can_delete_tutorial(actor):
            raise ForbiddenError("Only Admins can delete tutorials.")

        await db.execute(delete(Tutorial).where(Tutorial.id == tutorial_id))
        logger.info("Tutorial deleted: %s by %s", tutorial_id, actor.id)

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    async def _require_category(db: AsyncSession, category_id: uuid.UUID) -> None:
        if await db.get(Category, category_id) is None:
            raise NotFoundError("category")

    @staticmethod
    async def _require_chapter(db: AsyncSession, chapter_id: uuid.UUID) -> None:
        if await db.get(Chapter, chapter_id) is None:
            raise NotFoundError("chapter")

    @staticmethod
    async def _load(
        db: AsyncSession, tutorial_id: uuid.UUID, lock: bool = False
    ) -> Optional[Tutorial]:
        stmt = (
            select(Tutorial)
            .where(Tutorial.id == tutorial_id)
            .options(*TUTORIAL_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _reload(self, db: AsyncSession, tutorial_id: uuid.UUID) -> Tutorial:
        tutorial = await self._load(db, tutorial_id)
        if tutorial is None:
            raise NotFoundError("tutorial")
        return tutorial


# Module-level singleton
tutorial_service = TutorialService()
