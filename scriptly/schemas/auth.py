"""Request/response bodies for /api/auth."""

from pydantic import EmailStr, Field

from scriptly.schemas.common import APIModel
from scriptly.schemas.user import UserResponse


class RegisterRequest(APIModel):
    # No role field: registration always creates a student
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(APIModel):
    email: str
    password: str


class AuthResponse(APIModel):
    token: str = Field(description="Bearer token for the Authorization header")
    user: UserResponse
