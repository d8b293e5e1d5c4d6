"""
Scriptly Backend — Auth Dependencies
======================================

What:  FastAPI dependencies resolving the caller from the Authorization
       header, plus the role gate used by admin / chapter-lead routes.
How:   They share the request's database session (FastAPI caches
       `get_db_session` per request), so the actor is an object of the same
       unit of work the handler writes through.

    get_current_user    401 unless a valid Bearer token names a live user
    get_optional_user   None for anonymous or unusable tokens (public reads)
    require_roles(...)  403 unless the caller's *current* role is listed
"""

import logging
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import get_db_session
from scriptly.exceptions import ForbiddenError, UnauthorizedError
from scriptly.models.enums import Role
from scriptly.models.user import User
from scriptly.services.auth_service import auth_service

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes our own 401 body, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authorized, no token", code="token_missing")
    return await auth_service.resolve_token(db, credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await auth_service.resolve_token(db, credentials.credentials)
    except UnauthorizedError as e:
        logger.debug("Ignoring unusable token on public route: %s", e.code)
        return None


def require_roles(*roles: Role) -> Callable:
    """
    Dependency factory for role-gated routes.

    Usage:
        @router.post("/chapters")
        async def create(actor: User = Depends(require_roles(Role.ADMIN))): ...
    """
    allowed = frozenset(roles)

    async def role_gate(actor: User = Depends(get_current_user)) -> User:
        if actor.role not in allowed:
            raise ForbiddenError(
                f"Role {actor.role.value} is not authorized to access this route",
                context={"allowed": sorted(role.value for role in allowed)},
            )
        return actor

    return role_gate
