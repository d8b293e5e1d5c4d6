"""Event request/response bodies."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from scriptly.schemas.common import APIModel, ChapterRef, UserSummary


class EventCreateRequest(APIModel):
    name: str = Field(max_length=200)
    description: str
    date: datetime
    location: str = Field(max_length=255)
    chapter_id: uuid.UUID


class EventUpdateRequest(APIModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    chapter_id: Optional[uuid.UUID] = None


class EventResponse(APIModel):
    id: uuid.UUID
    name: str
    description: str
    date: datetime
    location: str
    chapter: ChapterRef
    organizer: UserSummary
    attendees: List[UserSummary] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class EventMutationResponse(APIModel):
    message: str
    event: EventResponse
