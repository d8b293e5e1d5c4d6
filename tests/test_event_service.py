"""
Scriptly Backend — Event Service Tests
========================================

What we test:
    ✅ Who may create events (admin anywhere, lead in own chapter only)
    ✅ Organizer / admin management rights
    ✅ Registration and deregistration, including the 409 cases
    ✅ Registered-events listing visibility
"""

import uuid
from datetime import datetime, timezone

import pytest

from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError
from scriptly.models.enums import Role
from scriptly.schemas.event import EventCreateRequest, EventUpdateRequest
from scriptly.services.event_service import event_service


def _event_data(chapter_id, **overrides) -> EventCreateRequest:
    values = {
        "name": "Kickoff",
        "description": "First meetup of the term",
        "date": datetime(2026, 11, 1, 18, 0, tzinfo=timezone.utc),
        "location": "Room 1",
        "chapter_id": chapter_id,
    }
    values.update(overrides)
    return EventCreateRequest(**values)


class TestCreateEvent:
    """Tests for create_event."""

    @pytest.mark.asyncio
    async def test_lead_creates_in_own_chapter(self, db_session, make_user, make_chapter):
        """A lead creates an event in their chapter as its organizer."""
        lena = await make_user("Lena", role=Role.CHAPTER_LEAD)
        alpha = await make_chapter("Alpha", lead=lena)

        event = await event_service.create_event(db_session, lena, _event_data(alpha.id))

        assert event.organizer.id == lena.id
        assert event.chapter.name == "Alpha"
        assert event.attendees == []

    @pytest.mark.asyncio
    async def test_lead_refused_in_other_chapter(self, db_session, make_user, make_chapter):
        """A lead is refused for another chapter."""
        lena = await make_user("Lena", role=Role.CHAPTER_LEAD)
        await make_chapter("Alpha", lead=lena)
        beta = await make_chapter("Beta")

        with pytest.raises(ForbiddenError, match="only create events for their own chapter"):
            await event_service.create_event(db_session, lena, _event_data(beta.id))

    @pytest.mark.asyncio
    async def test_student_refused(self, db_session, make_user, make_chapter):
        """Students cannot create events."""
        alpha = await make_chapter("Alpha")
        sam = await make_user("Sam", chapter=alpha)
        with pytest.raises(ForbiddenError, match="Not authorized to create events"):
            await event_service.create_event(db_session, sam, _event_data(alpha.id))

    @pytest.mark.asyncio
    async def test_admin_creates_anywhere(self, db_session, make_user, make_chapter):
        """An admin creates events in any chapter."""
        admin = await make_user("Ada", role=Role.ADMIN)
        alpha = await make_chapter("Alpha")

        event = await event_service.create_event(db_session, admin, _event_data(alpha.id))

        assert event.organizer.id == admin.id

    @pytest.mark.asyncio
    async def test_unknown_chapter_is_404(self, db_session, make_user):
        """Creating an event in an unknown chapter is a not-found error."""
        admin = await make_user("Ada", role=Role.ADMIN)
        with pytest.raises(NotFoundError):
            await event_service.create_event(db_session, admin, _event_data(uuid.uuid4()))


class TestManageEvent:
    """Tests for update_event and delete_event."""

    @pytest.mark.asyncio
    async def test_organizer_updates(self, db_session, make_user, make_chapter):
        """The organizer can update an event; unsent fields are kept."""
        lena = await make_user("Lena", role=Role.CHAPTER_LEAD)
        alpha = await make_chapter("Alpha", lead=lena)
        event = await event_service.create_event(db_session, lena, _event_data(alpha.id))

        updated = await event_service.update_event(
            db_session, lena, event.id, EventUpdateRequest(location="Hall B")
        )

        assert updated.location == "Hall B"
        assert updated.name == "Kickoff"

    @pytest.mark.asyncio
    async def test_other_lead_cannot_update_or_delete(self, db_session, make_user, make_chapter):
        """Another chapter's lead can neither update nor delete."""
        lena = await make_user("Lena", role=Role.CHAPTER_LEAD)
        alpha = await make_chapter("Alpha", lead=lena)
        mark = await make_user("Mark", role=Role.CHAPTER_LEAD)
        await make_chapter("Beta", lead=mark)
        event = await event_service.create_event(db_session, lena, _event_data(alpha.id))

        with pytest.raises(ForbiddenError):
            await event_service.update_event(db_session, mark, event.id, EventUpdateRequest(name="Mine"))
        with pytest.raises(ForbiddenError):
            await event_service.delete_event(db_session, mark, event.id)

    @pytest.mark.asyncio
    async def test_admin_deletes_event_with_attendees(self, db_session, make_user, make_chapter):
        """An admin deletes an event and its registrations go with it."""
        admin = await make_user("Ada", role=Role.ADMIN)
        alpha = await make_chapter("Alpha")
        sam = await make_user("Sam")
        event = await event_service.create_event(db_session, admin, _event_data(alpha.id))
        await event_service.register(db_session, sam, event.id)

        await event_service.delete_event(db_session, admin, event.id)

        with pytest.raises(NotFoundError):
            await event_service.get_event(db_session, event.id)
        assert await event_service.registered_events(db_session, sam, sam.id) == []


class TestRegistration:
    """Tests for event registration."""

    @pytest.mark.asyncio
    async def test_register_and_deregister(self, db_session, make_user, make_chapter):
        """Registering and deregistering twice both conflict."""
        admin = await make_user("Ada", role=Role.ADMIN)
        alpha = await make_chapter("Alpha")
        sam = await make_user("Sam")
        event = await event_service.create_event(db_session, admin, _event_data(alpha.id))

        registered = await event_service.register(db_session, sam, event.id)
        assert [a.id for a in registered.attendees] == [sam.id]
        with pytest.raises(ConflictError, match="Already registered for this event"):
            await event_service.register(db_session, sam, event.id)

        mine = await event_service.registered_events(db_session, sam, sam.id)
        assert [e.id for e in mine] == [event.id]

        left = await event_service.deregister(db_session, sam, event.id)
        assert left.attendees == []
        with pytest.raises(ConflictError, match="Not registered for this event"):
            await event_service.deregister(db_session, sam, event.id)

    @pytest.mark.asyncio
    async def test_register_unknown_event(self, db_session, make_user):
        """Registering for an unknown event is a not-found error."""
        sam = await make_user("Sam")
        with pytest.raises(NotFoundError):
            await event_service.register(db_session, sam, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_registered_events_private_to_self_and_admin(self, db_session, make_user):
        """Registered events are private to the user and admins."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        zoe = await make_user("Zoe")

        with pytest.raises(ForbiddenError):
            await event_service.registered_events(db_session, zoe, sam.id)
        assert await event_service.registered_events(db_session, admin, sam.id) == []
