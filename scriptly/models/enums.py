"""
Scriptly Backend — Closed Enumerations
========================================

Roles and tutorial statuses are closed sets. Both are `str` enums so they
serialize to their wire values ("chapter-lead", "pending") and compare equal
to plain strings coming from query parameters.
"""

import enum

from sqlalchemy import Enum as SAEnum


class Role(str, enum.Enum):
    STUDENT = "student"
    CHAPTER_LEAD = "chapter-lead"
    ADMIN = "admin"


class TutorialStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def enum_column_type(enum_cls: type[enum.Enum], name: str) -> SAEnum:
    """
    Column type storing the enum's *values* in a VARCHAR.

    native_enum=False keeps the schema portable (PostgreSQL and SQLite)
    and lets a new member ship without an ALTER TYPE migration.
    """
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
