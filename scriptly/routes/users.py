"""
Scriptly Backend — User Routes
================================

Most routes here are open to any signed-in user; the Authorization Policy
(inside the services) decides what the caller may actually do, e.g. a
student may rename themselves but not change their role.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import get_db_session
from scriptly.models.enums import Role
from scriptly.models.user import User
from scriptly.routes.deps import get_current_user, require_roles
from scriptly.schemas.common import ErrorResponse, MessageResponse
from scriptly.schemas.event import EventResponse
from scriptly.schemas.user import (
    PasswordChangeRequest,
    UserMutationResponse,
    UserResponse,
    UserUpdateRequest,
    VouchResponse,
    VouchResult,
)
from scriptly.services.auth_service import auth_service
from scriptly.services.event_service import event_service
from scriptly.services.user_service import user_service
from scriptly.services.vouch_service import vouch_service

router = APIRouter(prefix="/api/users", tags=["Users"])

_FORBIDDEN = {403: {"description": "Refused by the authorization policy", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "User not found", "model": ErrorResponse}}


@router.get("", response_model=List[UserResponse], summary="List all users (admin)")
async def list_users(
    actor: User = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserResponse]:
    users = await user_service.list_users(db)
    return [UserResponse.model_validate(u) for u in users]


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses=_NOT_FOUND,
    summary="Get one user",
)
async def get_user(
    user_id: UUID,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await user_service.get_user(db, user_id))


@router.put(
    "/{user_id}/role",
    response_model=UserMutationResponse,
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Update a user's name, role or chapter",
)
async def update_user(
    user_id: UUID,
    body: UserUpdateRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserMutationResponse:
    user = await user_service.update_profile(db, actor, user_id, body)
    return UserMutationResponse(
        message="User updated successfully",
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/{user_id}/vouch",
    response_model=VouchResponse,
    responses={
        400: {"description": "Self-vouch", "model": ErrorResponse},
        **_FORBIDDEN,
        **_NOT_FOUND,
        409: {"description": "Already vouched", "model": ErrorResponse},
    },
    summary="Vouch for a user",
)
async def vouch_for_user(
    user_id: UUID,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VouchResponse:
    target = await vouch_service.vouch(db, actor, user_id)
    return VouchResponse(
        message="User vouched successfully",
        user=VouchResult.model_validate(target),
    )


@router.get(
    "/{user_id}/registered-events",
    response_model=List[EventResponse],
    responses={**_FORBIDDEN, **_NOT_FOUND},
    summary="Events a user is registered for (self or admin)",
)
async def registered_events(
    user_id: UUID,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[EventResponse]:
    events = await event_service.registered_events(db, actor, user_id)
    return [EventResponse.model_validate(e) for e in events]


@router.put(
    "/{user_id}/password",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing or too short password", "model": ErrorResponse},
        401: {"description": "Old password is incorrect", "model": ErrorResponse},
        **_FORBIDDEN,
    },
    summary="Change your own password",
)
async def change_password(
    user_id: UUID,
    body: PasswordChangeRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.change_password(db, actor, user_id, body)
    return MessageResponse(
        message="Password updated successfully. Please log in with your new password."
    )
