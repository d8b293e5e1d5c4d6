"""
Scriptly Backend — User Model
===============================

What:  ORM model for the `users` table plus the `user_vouches` association.
Why:   User is the root identity entity. Role, chapter and vouch fields are
       mutated only by the services that own those rules.

Vouch storage:
    `user_vouches` holds one row per (user, voucher) pair. The composite
    primary key makes a duplicate vouch impossible at the storage level;
    `vouch_count` is kept equal to the number of rows by the vouch service,
    inside the same transaction that inserts the row.
"""

import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scriptly.database import Base, TimestampMixin
from scriptly.models.enums import Role, enum_column_type

if TYPE_CHECKING:
    from scriptly.models.chapter import Chapter


user_vouches = Table(
    "user_vouches",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("voucher_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    CheckConstraint("user_id <> voucher_id", name="ck_user_vouches_no_self_vouch"),
)


class User(TimestampMixin, Base):
    """
    A registered member.

    Relationships are declared lazy="raise": async sessions cannot lazy-load,
    so every query that needs `chapter` or `vouched_by` asks for it
    explicitly with selectinload().
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        enum_column_type(Role, "user_role"),
        nullable=False,
        default=Role.STUDENT,
    )
    chapter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("chapters.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    vouch_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    chapter: Mapped[Optional["Chapter"]] = relationship(
        "Chapter",
        foreign_keys="User.chapter_id",
        lazy="raise",
    )
    vouched_by: Mapped[List["User"]] = relationship(
        "User",
        secondary=user_vouches,
        primaryjoin=lambda: User.id == user_vouches.c.user_id,
        secondaryjoin=lambda: User.id == user_vouches.c.voucher_id,
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("vouch_count >= 0", name="ck_users_vouch_count_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
