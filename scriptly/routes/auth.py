"""
Scriptly Backend — Auth Routes
================================

    POST /api/auth/register   public, always creates a student
    POST /api/auth/login      public
    GET  /api/auth/profile    any signed-in user
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import get_db_session
from scriptly.models.user import User
from scriptly.routes.deps import get_current_user
from scriptly.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from scriptly.schemas.common import ErrorResponse
from scriptly.schemas.user import UserResponse
from scriptly.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing or malformed fields", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Register a new student account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.register(db, body)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a session token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.login(db, body)
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.get(
    "/profile",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="The signed-in user's profile",
)
async def profile(
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await auth_service.profile(db, actor))
