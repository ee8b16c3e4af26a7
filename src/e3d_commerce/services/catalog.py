"""
e3d_commerce.services.catalog

Brands and the category tree.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, HttpUrl
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Brand, Category
from e3d_commerce.db.repositories.catalog import CatalogRepo
from e3d_commerce.errors import ConflictError, InvalidInputError
from e3d_commerce.observability.logging import get_logger

log = get_logger(__name__)


class BrandCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    logo_url: HttpUrl | None = None


class CategoryCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    slug: str = Field(min_length=2, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    parent_id: int | None = None


def category_tree(categories: list[Category]) -> list[dict[str, Any]]:
    """Nest a flat category list under its parents; orphans become roots."""
    nodes = {
        c.id: {"id": c.id, "name": c.name, "slug": c.slug, "parent_id": c.parent_id, "children": []}
        for c in categories
    }
    roots: list[dict[str, Any]] = []
    for c in categories:
        parent = nodes.get(c.parent_id) if c.parent_id is not None else None
        (parent["children"] if parent is not None else roots).append(nodes[c.id])
    return roots


class CatalogService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._catalog = CatalogRepo(session)

    async def brands(self) -> list[Brand]:
        return await self._catalog.list_brands()

    async def categories(self) -> list[dict[str, Any]]:
        return category_tree(await self._catalog.list_categories())

    async def create_brand(self, body: BrandCreate, *, actor: str) -> Brand:
        if await self._catalog.get_brand_by_name(body.name) is not None:
            raise ConflictError("A brand with this name already exists")
        brand = Brand(name=body.name, logo_url=str(body.logo_url) if body.logo_url else None)
        await self._add(brand)
        log.info("brand_created", brand_id=brand.id, actor=actor)
        return brand

    async def create_category(self, body: CategoryCreate, *, actor: str) -> Category:
        if await self._catalog.get_category_by_slug(body.slug) is not None:
            raise ConflictError("A category with this slug already exists")
        if body.parent_id is not None and await self._catalog.get_category(body.parent_id) is None:
            raise InvalidInputError("Parent category not found", details={"parent_id": body.parent_id})
        category = Category(name=body.name, slug=body.slug, parent_id=body.parent_id)
        await self._add(category)
        log.info("category_created", category_id=category.id, slug=category.slug, actor=actor)
        return category

    async def _add(self, entity: Brand | Category) -> None:
        try:
            await self._catalog.add(entity)
            await self._session.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same unique value.
            await self._session.rollback()
            raise ConflictError("Duplicate catalogue entry") from exc
