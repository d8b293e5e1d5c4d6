"""
Scriptly Backend — Chapter Routes
===================================

Reads are public. Every write is admin-only and goes through ChapterService,
which keeps each chapter's lead and that lead's chapter pointing at each other.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import get_db_session
from scriptly.models.enums import Role
from scriptly.models.user import User
from scriptly.routes.deps import require_roles
from scriptly.schemas.chapter import (
    ChapterCreateRequest,
    ChapterDetailResponse,
    ChapterMutationResponse,
    ChapterResponse,
    ChapterUpdateRequest,
)
from scriptly.schemas.common import ErrorResponse, MessageResponse
from scriptly.services.chapter_service import chapter_service

router = APIRouter(prefix="/api/chapters", tags=["Chapters"])

admin_only = require_roles(Role.ADMIN)


@router.get("", response_model=List[ChapterResponse], summary="List chapters")
async def list_chapters(db: AsyncSession = Depends(get_db_session)) -> List[ChapterResponse]:
    chapters = await chapter_service.list_chapters(db)
    return [ChapterResponse.model_validate(c) for c in chapters]


@router.post(
    "",
    response_model=ChapterMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing name or admin as lead", "model": ErrorResponse},
        404: {"description": "Lead user not found", "model": ErrorResponse},
        409: {"description": "Name already taken", "model": ErrorResponse},
    },
    summary="Create a chapter, optionally with a lead",
)
async def create_chapter(
    body: ChapterCreateRequest,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> ChapterMutationResponse:
    chapter = await chapter_service.create_chapter(db, actor, body)
    return ChapterMutationResponse(
        message="Chapter created successfully",
        chapter=ChapterResponse.model_validate(chapter),
    )


@router.get(
    "/{chapter_id}",
    response_model=ChapterDetailResponse,
    responses={404: {"description": "Chapter not found", "model": ErrorResponse}},
    summary="Chapter with lead and members",
)
async def get_chapter(
    chapter_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ChapterDetailResponse:
    return await chapter_service.get_chapter_detail(db, chapter_id)


@router.put(
    "/{chapter_id}",
    response_model=ChapterMutationResponse,
    responses={
        400: {"description": "Empty name or admin as lead", "model": ErrorResponse},
        404: {"description": "Chapter or lead not found", "model": ErrorResponse},
        409: {"description": "Name already taken", "model": ErrorResponse},
    },
    summary="Update a chapter; chapterLeadId null unassigns the lead",
)
async def update_chapter(
    chapter_id: UUID,
    body: ChapterUpdateRequest,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> ChapterMutationResponse:
    chapter = await chapter_service.update_chapter(db, actor, chapter_id, body)
    return ChapterMutationResponse(
        message="Chapter updated successfully",
        chapter=ChapterResponse.model_validate(chapter),
    )


@router.delete(
    "/{chapter_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Chapter not found", "model": ErrorResponse}},
    summary="Delete a chapter, its events, and its members' links",
)
async def delete_chapter(
    chapter_id: UUID,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    name = await chapter_service.delete_chapter(db, actor, chapter_id)
    return MessageResponse(message=f'Chapter "{name}" deleted successfully')
