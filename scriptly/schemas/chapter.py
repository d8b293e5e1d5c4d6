"""Chapter request/response bodies."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from scriptly.models.enums import Role
from scriptly.schemas.common import APIModel, OptionalId, UserSummary


class ChapterCreateRequest(APIModel):
    name: str = Field(max_length=120)
    description: str = ""
    chapter_lead_id: OptionalId = None


class ChapterUpdateRequest(APIModel):
    """
    Partial update. `chapterLeadId` absent leaves the lead untouched,
    `chapterLeadId: null` unassigns the current lead.
    """

    name: Optional[str] = Field(default=None, max_length=120)
    description: Optional[str] = None
    chapter_lead_id: OptionalId = None


class ChapterResponse(APIModel):
    id: uuid.UUID
    name: str
    description: str
    chapter_lead: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class ChapterMember(APIModel):
    id: uuid.UUID
    name: str
    email: str
    role: Role
    vouch_count: int


class ChapterDetailResponse(ChapterResponse):
    members: List[ChapterMember] = Field(default_factory=list)


class ChapterMutationResponse(APIModel):
    message: str
    chapter: ChapterResponse
