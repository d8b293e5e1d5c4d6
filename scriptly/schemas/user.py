"""
Scriptly Backend — User Schemas
=================================

`UserUpdateRequest` distinguishes an absent `chapterId` (leave the chapter
alone) from an explicit null or "" (unassign). Services read
`model_fields_set` to tell them apart.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from scriptly.models.enums import Role
from scriptly.schemas.common import APIModel, ChapterRef, OptionalId


class UserResponse(APIModel):
    id: uuid.UUID
    name: str
    email: str
    role: Role
    chapter: Optional[ChapterRef] = None
    vouch_count: int
    vouched_by: List[uuid.UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("vouched_by", mode="before")
    @classmethod
    def voucher_ids(cls, v):
        """ORM objects carry User instances; the API exposes their ids only."""
        return [getattr(item, "id", item) for item in v or []]


class UserUpdateRequest(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    role: Optional[Role] = None
    chapter_id: OptionalId = None


class UserMutationResponse(APIModel):
    message: str
    user: UserResponse


class PasswordChangeRequest(APIModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class VouchResult(APIModel):
    id: uuid.UUID
    name: str
    email: str
    role: Role
    vouch_count: int


class VouchResponse(APIModel):
    message: str
    user: VouchResult
