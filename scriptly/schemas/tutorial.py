"""
Scriptly Backend — Tutorial & Category Schemas
================================================

Keywords arrive either as a JSON list or as one comma-separated string
(the form's text input). Both are normalized to a list here; trimming and
lowercasing happen in TutorialService so every write path shares them.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BeforeValidator, Field

from scriptly.models.enums import TutorialStatus
from scriptly.schemas.common import (
    APIModel,
    CategoryRef,
    ChapterRef,
    OptionalId,
    UserSummary,
)


def _split_keywords(value):
    if isinstance(value, str):
        return value.split(",")
    return value


KeywordList = Annotated[List[str], BeforeValidator(_split_keywords)]


# ── Categories ────────────────────────────────────────────────────────────


class CategoryCreateRequest(APIModel):
    name: str = Field(max_length=100)
    description: str = ""


class CategoryUpdateRequest(APIModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None


class CategoryResponse(APIModel):
    id: uuid.UUID
    name: str
    description: str
    created_at: datetime
    updated_at: datetime


class CategoryMutationResponse(APIModel):
    message: str
    category: CategoryResponse


# ── Tutorials ─────────────────────────────────────────────────────────────


class TutorialCreateRequest(APIModel):
    title: str = Field(max_length=200)
    content: str
    category_id: uuid.UUID
    chapter_id: OptionalId = None
    keywords: KeywordList = Field(default_factory=list)


class TutorialUpdateRequest(APIModel):
    """
    Partial update. Only fields present in the body are applied; an explicit
    `chapterId: null` detaches the tutorial from its chapter.
    """

    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    chapter_id: OptionalId = None
    keywords: Optional[KeywordList] = None
    status: Optional[TutorialStatus] = None


class TutorialResponse(APIModel):
    id: uuid.UUID
    title: str
    content: str
    category: CategoryRef
    author: UserSummary
    status: TutorialStatus
    chapter: Optional[ChapterRef] = None
    keywords: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class TutorialMutationResponse(APIModel):
    message: str
    tutorial: TutorialResponse
