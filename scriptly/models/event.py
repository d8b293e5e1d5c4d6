"""
Scriptly Backend — Event Model
================================

An event is hosted by exactly one chapter and organized by one user.
Attendees live in `event_attendees`; its composite primary key keeps the
attendee set free of duplicates.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scriptly.database import Base, TimestampMixin

if TYPE_CHECKING:
    from scriptly.models.chapter import Chapter
    from scriptly.models.user import User


event_attendees = Table(
    "event_attendees",
    Base.metadata,
    Column("event_id", Uuid, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Event(TimestampMixin, Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    chapter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("chapters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )

    chapter: Mapped["Chapter"] = relationship("Chapter", lazy="raise")
    organizer: Mapped["User"] = relationship("User", lazy="raise")
    attendees: Mapped[List["User"]] = relationship(
        "User",
        secondary=event_attendees,
        lazy="raise",
    )

    __table_args__ = (
        Index("idx_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name='{self.name}', chapter={self.chapter_id})>"
