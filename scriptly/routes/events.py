"""Event routes: public reads, chapter-lead/admin writes, registration for anyone signed in."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import get_db_session
from scriptly.models.enums import Role
from scriptly.models.user import User
from scriptly.routes.deps import get_current_user, require_roles
from scriptly.schemas.common import ErrorResponse, MessageResponse
from scriptly.schemas.event import (
    EventCreateRequest,
    EventMutationResponse,
    EventResponse,
    EventUpdateRequest,
)
from scriptly.services.event_service import event_service

router = APIRouter(prefix="/api/events", tags=["Events"])

organizers = require_roles(Role.CHAPTER_LEAD, Role.ADMIN)

_FORBIDDEN = {403: {"description": "Not the organizer, chapter lead or an admin", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "Event or chapter not found", "model": ErrorResponse}}


@router.get("", response_model=List[EventResponse], summary="List events by date")
async def list_events(
    chapter_id: Optional[UUID] = Query(default=None, alias="chapterId"),
    db: AsyncSession = Depends(get_db_session),
) -> List[EventResponse]:
    events = await event_service.list_events(db, chapter_id=chapter_id)
    return [EventResponse.model_validate(e) for e in events]


@router.post(
    "",
    response_model=EventMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Create an event for a chapter",
)
async def create_event(
    body: EventCreateRequest,
    actor: User = Depends(organizers),
    db: AsyncSession = Depends(get_db_session),
) -> EventMutationResponse:
    event = await event_service.create_event(db, actor, body)
    return EventMutationResponse(
        message="Event created successfully",
        event=EventResponse.model_validate(event),
    )


@router.get("/{event_id}", response_model=EventResponse, responses=_NOT_FOUND, summary="Get one event")
async def get_event(
    event_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> EventResponse:
    return EventResponse.model_validate(await event_service.get_event(db, event_id))


@router.put(
    "/{event_id}",
    response_model=EventMutationResponse,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Update an event (organizer or admin)",
)
async def update_event(
    event_id: UUID,
    body: EventUpdateRequest,
    actor: User = Depends(organizers),
    db: AsyncSession = Depends(get_db_session),
) -> EventMutationResponse:
    event = await event_service.update_event(db, actor, event_id, body)
    return EventMutationResponse(
        message="Event updated successfully",
        event=EventResponse.model_validate(event),
    )


@router.delete(
    "/{event_id}",
    response_model=MessageResponse,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Delete an event (organizer or admin)",
)
async def delete_event(
    event_id: UUID,
    actor: User = Depends(organizers),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await event_service.delete_event(db, actor, event_id)
    return MessageResponse(message="Event removed")


@router.post(
    "/{event_id}/register",
    response_model=EventMutationResponse,
    responses={**_NOT_FOUND, 409: {"description": "Already registered", "model": ErrorResponse}},
    summary="Register for an event",
)
async def register_for_event(
    event_id: UUID,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EventMutationResponse:
    event = await event_service.register(db, actor, event_id)
    return EventMutationResponse(
        message="Successfully registered for the event",
        event=EventResponse.model_validate(event),
    )


@router.post(
    "/{event_id}/deregister",
    response_model=EventMutationResponse,
    responses={**_NOT_FOUND, 409: {"description": "Not registered", "model": ErrorResponse}},
    summary="Cancel a registration",
)
async def deregister_from_event(
    event_id: UUID,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EventMutationResponse:
    event = await event_service.deregister(db, actor, event_id)
    return EventMutationResponse(
        message="Successfully deregistered from the event",
        event=EventResponse.model_validate(event),
    )
