"""
Scriptly Backend — Tutorial Model
===================================

What:  ORM model for the `tutorials` table.

Lifecycle (owned by TutorialService):
    1. Created `approved` when an admin authors it, otherwise `pending`
    2. Admin approves or rejects; the author's later edits send an approved
       or rejected tutorial back to `pending`
    3. Deleted by an admin only

Visibility:
    Only `approved` tutorials are visible to anonymous and non-privileged
    readers. Listing queries filter on status, hence the composite index
    (status, created_at).
"""

import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scriptly.database import Base, TimestampMixin
from scriptly.models.enums import TutorialStatus, enum_column_type

if TYPE_CHECKING:
    from scriptly.models.category import Category
    from scriptly.models.chapter import Chapter
    from scriptly.models.user import User


class Tutorial(TimestampMixin, Base):
    __tablename__ = "tutorials"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # RESTRICT: a category cannot disappear from under its tutorials
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[TutorialStatus] = mapped_column(
        enum_column_type(TutorialStatus, "tutorial_status"),
        nullable=False,
        default=TutorialStatus.PENDING,
    )
    chapter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("chapters.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Stored trimmed + lowercase; reassigned as a whole list, never mutated in place
    keywords: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    author: Mapped["User"] = relationship("User", lazy="raise")
    category: Mapped["Category"] = relationship("Category", lazy="raise")
    chapter: Mapped[Optional["Chapter"]] = relationship("Chapter", lazy="raise")

    __table_args__ = (
        Index("idx_tutorials_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Tutorial(id={self.id}, status='{self.status.value}', author={self.author_id})>"
