"""Scriptly Backend — Tutorial Category Model."""

import uuid

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from scriptly.database import Base, TimestampMixin


class Category(TimestampMixin, Base):
    """
    Tutorial classification. Names are stored trimmed and lowercase so
    "Python " and "python" are the same category.
    """

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
