"""
Scriptly Backend — Tutorial & Category Routes
===============================================

Route order matters: the /categories routes are registered before
/{tutorial_id}, otherwise "categories" would be parsed as a tutorial id.

Reads use optional auth: an anonymous caller (or one with an unusable
token) is a plain reader who only sees approved tutorials.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import get_db_session
from scriptly.models.enums import Role
from scriptly.models.user import User
from scriptly.routes.deps import get_current_user, get_optional_user, require_roles
from scriptly.schemas.common import ErrorResponse, MessageResponse
from scriptly.schemas.tutorial import (
    CategoryCreateRequest,
    CategoryMutationResponse,
    CategoryResponse,
    CategoryUpdateRequest,
    TutorialCreateRequest,
    TutorialMutationResponse,
    TutorialResponse,
    TutorialUpdateRequest,
)
from scriptly.services.category_service import category_service
from scriptly.services.tutorial_service import tutorial_service

router = APIRouter(prefix="/api/tutorials", tags=["Tutorials"])

admin_only = require_roles(Role.ADMIN)

_FORBIDDEN = {403: {"description": "Refused by the authorization policy", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "Tutorial not found", "model": ErrorResponse}}


# ══════════════════════════════════════════════════════════════════════════
# Categories
# ══════════════════════════════════════════════════════════════════════════


@router.get("/categories", response_model=List[CategoryResponse], summary="List categories")
async def list_categories(db: AsyncSession = Depends(get_db_session)) -> List[CategoryResponse]:
    categories = await category_service.list_categories(db)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post(
    "/categories",
    response_model=CategoryMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Name already taken", "model": ErrorResponse}},
    summary="Create a category (admin)",
)
async def create_category(
    body: CategoryCreateRequest,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryMutationResponse:
    category = await category_service.create_category(db, actor, body)
    return CategoryMutationResponse(
        message="Category created successfully",
        category=CategoryResponse.model_validate(category),
    )


@router.put(
    "/categories/{category_id}",
    response_model=CategoryMutationResponse,
    responses={
        404: {"description": "Category not found", "model": ErrorResponse},
        409: {"description": "Name already taken", "model": ErrorResponse},
    },
    summary="Update a category (admin)",
)
async def update_category(
    category_id: UUID,
    body: CategoryUpdateRequest,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryMutationResponse:
    category = await category_service.update_category(db, actor, category_id, body)
    return CategoryMutationResponse(
        message="Category updated successfully",
        category=CategoryResponse.model_validate(category),
    )


@router.delete(
    "/categories/{category_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Category not found", "model": ErrorResponse},
        409: {"description": "Tutorials still use the category", "model": ErrorResponse},
    },
    summary="Delete an unused category (admin)",
)
async def delete_category(
    category_id: UUID,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    name = await category_service.delete_category(db, actor, category_id)
    return MessageResponse(message=f'Category "{name}" deleted successfully')


# ══════════════════════════════════════════════════════════════════════════
# Tutorials
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=List[TutorialResponse],
    responses={400: {"description": "Unknown status filter", "model": ErrorResponse}},
    summary="List tutorials, newest first",
    description=(
        "Filters combine with AND. `search` matches title, content or keywords "
        "case-insensitively. `status` is honoured for admins only; everyone "
        "else sees approved tutorials."
    ),
)
async def list_tutorials(
    category_id: Optional[UUID] = Query(default=None, alias="categoryId"),
    author_id: Optional[UUID] = Query(default=None, alias="authorId"),
    chapter_id: Optional[UUID] = Query(default=None, alias="chapterId"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=200),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[TutorialResponse]:
    tutorials = await tutorial_service.list_tutorials(
        db,
        viewer=viewer,
        category_id=category_id,
        author_id=author_id,
        chapter_id=chapter_id,
        status=status_filter,
        search=search,
    )
    return [TutorialResponse.model_validate(t) for t in tutorials]


@router.post(
    "",
    response_model=TutorialMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Category or chapter not found", "model": ErrorResponse}},
    summary="Submit a tutorial",
)
async def create_tutorial(
    body: TutorialCreateRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TutorialMutationResponse:
    tutorial = await tutorial_service.create_tutorial(db, actor, body)
    return TutorialMutationResponse(
        message="Tutorial created successfully",
        tutorial=TutorialResponse.model_validate(tutorial),
    )


@router.get(
    "/{tutorial_id}",
    response_model=TutorialResponse,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Get one tutorial",
)
async def get_tutorial(
    tutorial_id: UUID,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> TutorialResponse:
    return TutorialResponse.model_validate(
        await tutorial_service.get_tutorial(db, viewer, tutorial_id)
    )


@router.put(
    "/{tutorial_id}",
    response_model=TutorialMutationResponse,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Edit a tutorial (author or admin)",
)
async def update_tutorial(
    tutorial_id: UUID,
    body: TutorialUpdateRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TutorialMutationResponse:
    tutorial = await tutorial_service.update_tutorial(db, actor, tutorial_id, body)
    return TutorialMutationResponse(
        message="Tutorial updated successfully",
        tutorial=TutorialResponse.model_validate(tutorial),
    )


@router.delete(
    "/{tutorial_id}",
    response_model=MessageResponse,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Delete a tutorial (admin)",
)
async def delete_tutorial(
    tutorial_id: UUID,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await tutorial_service.delete_tutorial(db, actor, tutorial_id)
    return MessageResponse(message="Tutorial removed")


@router.put(
    "/{tutorial_id}/approve",
    response_model=TutorialMutationResponse,
    responses={**_NOT_FOUND, 409: {"description": "Already approved", "model": ErrorResponse}},
    summary="Approve a tutorial (admin)",
)
async def approve_tutorial(
    tutorial_id: UUID,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> TutorialMutationResponse:
    tutorial = await tutorial_service.approve(db, actor, tutorial_id)
    return TutorialMutationResponse(
        message="Tutorial approved successfully",
        tutorial=TutorialResponse.model_validate(tutorial),
    )


@router.put(
    "/{tutorial_id}/reject",
    response_model=TutorialMutationResponse,
    responses={**_NOT_FOUND, 409: {"description": "Already rejected", "model": ErrorResponse}},
    summary="Reject a tutorial (admin)",
)
async def reject_tutorial(
    tutorial_id: UUID,
    actor: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> TutorialMutationResponse:
    tutorial = await tutorial_service.reject(db, actor, tutorial_id)
    return TutorialMutationResponse(
        message="Tutorial rejected successfully",
        tutorial=TutorialResponse.model_validate(tutorial),
    )
