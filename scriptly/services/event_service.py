"""
Scriptly Backend — Event Service
==================================

What:  Event CRUD and attendee registration.

Who may create:  admins, or the lead of the hosting chapter
                 (policy.can_create_event; checked once at creation).
Who may manage:  admins, or the event's organizer.
"""

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scriptly.models.chapter import Chapter
from scriptly.models.enums import Role
from scriptly.models.event import Event, event_attendees
from scriptly.models.user import User
from scriptly.schemas.event import EventCreateRequest, EventUpdateRequest
from scriptly.services import policy

logger = logging.getLogger(__name__)

EVENT_LOAD_OPTIONS = (
    selectinload(Event.chapter),
    selectinload(Event.organizer),
    selectinload(Event.attendees),
)

_TEXT_FIELDS = ("name", "description", "location")


class EventService:

    async def list_events(
        self, db: AsyncSession, chapter_id: Optional[uuid.UUID] = None
    ) -> Sequence[Event]:
        """All events by date, optionally only those of one chapter."""
        stmt = select(Event).options(*EVENT_LOAD_OPTIONS).order_by(Event.date)
        if chapter_id is not None:
            stmt = stmt.where(Event.chapter_id == chapter_id)
        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_event(self, db: AsyncSession, event_id: uuid.UUID) -> Event:
        event = await self._load(db, event_id)
        if event is None:
            raise NotFoundError("event")
        return event

    async def create_event(
        self, db: AsyncSession, actor: User, data: EventCreateRequest
    ) -> Event:
        values = {field: (getattr(data, field) or "").strip() for field in _TEXT_FIELDS}
        if not all(values.values()):
            raise ValidationError("Please provide name, description, date, location and chapter.")

        chapter = await db.get(Chapter, data.chapter_id)
        if chapter is None:
            raise NotFoundError("chapter")
        if not policy.can_create_event(actor, chapter):
            if actor.role == Role.CHAPTER_LEAD:
                raise ForbiddenError("Chapter Lead can only create events for their own chapter")
            raise ForbiddenError("Not authorized to create events")

        event = Event(
            **values,
            date=data.date,
            chapter_id=chapter.id,
            organizer_id=actor.id,
        )
        db.add(event)
        await db.flush()
        logger.info("Event created: %s in chapter %s by %s", event.id, chapter.id, actor.id)
        return await self.get_event(db, event.id)

    async def update_event(
        self,
        db: AsyncSession,
        actor: User,
        event_id: uuid.UUID,
        data: EventUpdateRequest,
    ) -> Event:
        event = await self.get_event(db, event_id)
        if not policy.can_manage_event(actor, event):
            raise ForbiddenError("Not authorized to update this event")

        fields = data.model_fields_set
        for field in _TEXT_FIELDS:
            if field in fields:
                value = (getattr(data, field) or "").strip()
                if not value:
                    raise ValidationError(f"Event {field} cannot be empty.", field=field)
                setattr(event, field, value)
        if "date" in fields:
            if data.date is None:
                raise ValidationError("Event date cannot be empty.", field="date")
            event.date = data.date
        if "chapter_id" in fields:
            if data.chapter_id is None or await db.get(Chapter, data.chapter_id) is None:
                raise NotFoundError("chapter")
            event.chapter_id = data.chapter_id

        await db.flush()
        return await self._reload(db, event.id)

    async def delete_event(self, db: AsyncSession, actor: User, event_id: uuid.UUID) -> None:
        event = await self.get_event(db, event_id)
        if not policy.can_manage_event(actor, event):
            raise ForbiddenError("Not authorized to delete this event")

        await db.execute(delete(event_attendees).where(event_attendees.c.event_id == event.id))
        await db.execute(delete(Event).where(Event.id == event.id))
        logger.info("Event deleted: %s by %s", event_id, actor.id)

    # ── Registration ──────────────────────────────────────────────────────

    async def register(self, db: AsyncSession, actor: User, event_id: uuid.UUID) -> Event:
        event = await self._load(db, event_id, lock=True)
        if event is None:
            raise NotFoundError("event")
        if any(attendee.id == actor.id for attendee in event.attendees):
            raise ConflictError("Already registered for this event")

        event.attendees.append(actor)
        await db.flush()
        logger.info("User %s registered for event %s", actor.id, event.id)
        return event

    async def deregister(self, db: AsyncSession, actor: User, event_id: uuid.UUID) -> Event:
        event = await self._load(db, event_id, lock=True)
        if event is None:
            raise NotFoundError("event")
        attendee = next((a for a in event.attendees if a.id == actor.id), None)
        if attendee is None:
            raise ConflictError("Not registered for this event")

        event.attendees.remove(attendee)
        await db.flush()
        logger.info("User %s deregistered from event %s", actor.id, event.id)
        return event

    async def registered_events(
        self, db: AsyncSession, actor: User, user_id: uuid.UUID
    ) -> Sequence[Event]:
        if not policy.can_view_registered_events(actor, user_id):
            raise ForbiddenError("Not authorized to view this user's registered events")
        if await db.get(User, user_id) is None:
            raise NotFoundError("user")

        result = await db.execute(
            select(Event)
            .join(event_attendees, event_attendees.c.event_id == Event.id)
            .where(event_attendees.c.user_id == user_id)
            .options(*EVENT_LOAD_OPTIONS)
            .order_by(Event.date)
        )
        return result.scalars().all()

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    async def _load(
        db: AsyncSession, event_id: uuid.UUID, lock: bool = False
    ) -> Optional[Event]:
        stmt = (
            select(Event)
            .where(Event.id == event_id)
            .options(*EVENT_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def _reload(self, db: AsyncSession, event_id: uuid.UUID) -> Event:
        return await self.get_event(db, event_id)


# Module-level singleton
event_service = EventService()
