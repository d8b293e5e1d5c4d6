"""
Scriptly Backend — Shared Schema Building Blocks
==================================================

What:  The camelCase API base model, compact reference shapes embedded in
       other responses, and the error / health responses.
Why:   The wire format is camelCase (`chapterLeadId`, `vouchCount`) while the
       Python side stays snake_case. Inputs accept either spelling.
"""

import uuid
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, Field
from pydantic.alias_generators import to_camel

from scriptly.models.enums import Role


class APIModel(BaseModel):
    """Base for every request/response body exchanged with the client."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


def blank_to_none(value: Any) -> Any:
    """Clients send "" for an unselected dropdown; treat it as null."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalId = Annotated[Optional[uuid.UUID], BeforeValidator(blank_to_none)]


# ══════════════════════════════════════════════════════════════════════════
# Embedded references: populated relationships inside other responses
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(APIModel):
    id: uuid.UUID
    name: str
    email: str
    role: Role


class ChapterRef(APIModel):
    id: uuid.UUID
    name: str


class CategoryRef(APIModel):
    id: uuid.UUID
    name: str


class MessageResponse(APIModel):
    """Returned by deletions and other actions with nothing else to say."""

    message: str


# ══════════════════════════════════════════════════════════════════════════
# Error / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "Only Admins can approve or reject tutorials.",
            "details": null,
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
