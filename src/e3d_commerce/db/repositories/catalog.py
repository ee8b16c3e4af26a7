"""
e3d_commerce.db.repositories.catalog

Repository for the reference data products point at.

Responsibilities:
- List brands and categories in display order.
- Look up brands, categories and 3D models by id or natural key.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Brand, Category, ProductModel3D


class CatalogRepo:
    """Brands, categories and 3D model metadata referenced by products."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_brands(self) -> list[Brand]:
        stmt = select(Brand).order_by(Brand.name)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_categories(self) -> list[Category]:
        stmt = select(Category).order_by(Category.name)
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_brand(self, brand_id: int) -> Brand | None:
        return await self._session.get(Brand, brand_id)

    async def get_brand_by_name(self, name: str) -> Brand | None:
        stmt = select(Brand).where(Brand.name == name)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_category(self, category_id: int) -> Category | None:
        return await self._session.get(Category, category_id)

    async def get_category_by_slug(self, slug: str) -> Category | None:
        stmt = select(Category).where(Category.slug == slug)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_model3d(self, model_id: uuid.UUID) -> ProductModel3D | None:
        return await self._session.get(ProductModel3D, model_id)

    async def add(
        self, entity: Brand | Category | ProductModel3D
    ) -> Brand | Category | ProductModel3D:
        self._session.add(entity)
        await self._session.flush()
        return entity
