"""
Scriptly Backend — Chapter Model
==================================

Bidirectional invariant (maintained by ChapterService):
    chapter.chapter_lead_id == U.id  ⇒  U.chapter_id == chapter.id

`chapter_lead_id` is UNIQUE, so a user can lead at most one chapter.
NULLs do not collide, so any number of chapters may be leaderless.

Members are not stored on the chapter; they are the users whose
`chapter_id` points here.
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scriptly.database import Base, TimestampMixin

if TYPE_CHECKING:
    from scriptly.models.user import User


class Chapter(TimestampMixin, Base):
    __tablename__ = "chapters"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # users.chapter_id and chapters.chapter_lead_id reference each other;
    # use_alter breaks the cycle when the schema is created.
    chapter_lead_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey(
            "users.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_chapters_chapter_lead_id_users",
        ),
        nullable=True,
        unique=True,
    )

    chapter_lead: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys="Chapter.chapter_lead_id",
        lazy="raise",
        post_update=True,
    )

    def __repr__(self) -> str:
        return f"<Chapter(id={self.id}, name='{self.name}', lead={self.chapter_lead_id})>"
