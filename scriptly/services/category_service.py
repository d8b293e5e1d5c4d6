"""Tutorial categories. Reads are public, writes are admin-only."""

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scriptly.database import flush_or_conflict
from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scriptly.models.category import Category
from scriptly.models.tutorial import Tutorial
from scriptly.models.user import User
from scriptly.schemas.tutorial import CategoryCreateRequest, CategoryUpdateRequest
from scriptly.services import policy

logger = logging.getLogger(__name__)


def normalize_category_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip().lower()
    if not cleaned:
        raise ValidationError("Category name is required.", field="name")
    return cleaned


class CategoryService:

    async def list_categories(self, db: AsyncSession) -> Sequence[Category]:
        result = await db.execute(select(Category).order_by(Category.name))
        return result.scalars().all()

    async def get_category(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        category = await db.get(Category, category_id)
        if category is None:
            raise NotFoundError("category")
        return category

    async def create_category(
        self, db: AsyncSession, actor: User, data: CategoryCreateRequest
    ) -> Category:
        self._require_admin(actor)
        name = normalize_category_name(data.name)
        await self._ensure_name_free(db, name)

        category = Category(name=name, description=(data.description or "").strip())
        db.add(category)
        await flush_or_conflict(db, f'Category "{name}" already exists.')
        logger.info("Category created: %s (%s)", category.id, name)
        return category

    async def update_category(
        self,
        db: AsyncSession,
        actor: User,
        category_id: uuid.UUID,
        data: CategoryUpdateRequest,
    ) -> Category:
        self._require_admin(actor)
        category = await self.get_category(db, category_id)

        if "name" in data.model_fields_set:
            name = normalize_category_name(data.name)
            if name != category.name:
                await self._ensure_name_free(db, name)
                category.name = name
        if "description" in data.model_fields_set:
            category.description = (data.description or "").strip()

        await flush_or_conflict(db, f'Category "{category.name}" already exists.')
        return category

    async def delete_category(
        self, db: AsyncSession, actor: User, category_id: uuid.UUID
    ) -> str:
        """Refuses while any tutorial is filed under the category."""
        self._require_admin(actor)
        category = await self.get_category(db, category_id)

        linked = await db.scalar(
            select(func.count()).select_from(Tutorial).where(Tutorial.category_id == category.id)
        )
        if linked:
            raise ConflictError(
                f'Cannot delete category "{category.name}". '
                f"It has {linked} tutorials linked to it."
            )

        name = category.name
        await db.execute(delete(Category).where(Category.id == category.id))
        logger.info("Category deleted: %s (%s)", category_id, name)
        return name

    @staticmethod
    async def _ensure_name_free(db: AsyncSession, name: str) -> None:
        taken = await db.scalar(
            select(func.count()).select_from(Category).where(Category.name == name)
        )
        if taken:
            raise ConflictError(f'Category "{name}" already exists.')

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not policy.is_admin(actor):
            raise ForbiddenError("Only Admins can manage categories.")


# Module-level singleton
category_service = CategoryService()
