"""
Scriptly Backend — Password Hashing & Session Tokens
======================================================

What:  bcrypt password hashing and JWT issue/verify.
Who:   AuthService (register, login, change password) and the auth
       dependencies in routes/deps.py (token resolution).

Token claims:
    id    user id (string UUID)
    role  role at issue time, informational only; the current role is
          always re-read from the database when the token is resolved
    exp   expiry, `ACCESS_TOKEN_EXPIRE_MINUTES` after issue
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict

import bcrypt
from jose import JWTError, jwt

from scriptly.config import settings
from scriptly.database import utcnow
from scriptly.exceptions import UnauthorizedError, ValidationError
from scriptly.models.enums import Role

logger = logging.getLogger(__name__)

# bcrypt silently ignores everything past 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes long.",
            field="password",
        )
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; malformed hashes count as a mismatch."""
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def create_access_token(user_id: uuid.UUID, role: Role) -> str:
    expires_at = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"id": str(user_id), "role": role.value, "exp": expires_at}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verifies signature and expiry and returns the claims.

    Raises:
        UnauthorizedError(code="token_invalid"): bad signature, malformed
            token, expired token, or claims without a usable `id`.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        claims["id"] = uuid.UUID(str(claims["id"]))
    except (JWTError, KeyError, ValueError) as e:
        logger.info("Rejected session token: %s", type(e).__name__)
        raise UnauthorizedError("Not authorized, token failed", code="token_invalid")
    return claims
