"""
e3d_commerce.db.repositories.products

Repository for `Product` entities and the listing filter builder.

Responsibilities:
- Translate a `ProductFilter` into WHERE conditions.
- Paginated listing, detail, featured and autocomplete queries.
- Review aggregates (average rating / count) in a single grouped query.
- Admin CRUD and stock statistics.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from sqlalchemy import ColumnElement, Select, asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from e3d_commerce.db.models import OrderItem, Product, ProductImage, Review

SortField = Literal["name", "price", "created_at", "updated_at"]
SortOrder = Literal["asc", "desc"]

_SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}


@dataclass(frozen=True, slots=True)
class ProductFilter:
    search: str | None = None
    category_id: int | None = None
    brand_id: int | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    has_3d_model: bool | None = None
    in_stock: bool | None = None
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"
    page: int = 1
    per_page: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass(frozen=True, slots=True)
class RatingSummary:
    average: float | None
    count: int


def build_product_conditions(flt: ProductFilter) -> list[ColumnElement[bool]]:
    # Listing only ever shows active products; admin views go through `get`.
    conditions: list[ColumnElement[bool]] = [Product.is_active.is_(True)]

    if flt.search:
        conditions.append(
            or_(
                Product.name.icontains(flt.search, autoescape=True),
                Product.description.icontains(flt.search, autoescape=True),
                Product.sku.icontains(flt.search, autoescape=True),
            )
        )
    if flt.category_id is not None:
        conditions.append(Product.category_id == flt.category_id)
    if flt.brand_id is not None:
        conditions.append(Product.brand_id == flt.brand_id)
    if flt.min_price is not None:
        conditions.append(Product.price >= flt.min_price)
    if flt.max_price is not None:
        conditions.append(Product.price <= flt.max_price)
    if flt.has_3d_model is not None:
        conditions.append(
            Product.model3d_id.is_not(None) if flt.has_3d_model else Product.model3d_id.is_(None)
        )
    if flt.in_stock is not None:
        conditions.append(Product.stock > 0 if flt.in_stock else Product.stock == 0)

    return conditions


def _with_listing_relations(stmt: Select[Any]) -> Select[Any]:
    return stmt.options(
        selectinload(Product.brand),
        selectinload(Product.category),
        selectinload(Product.images),
        selectinload(Product.model3d),
    )


class ProductRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_page(self, flt: ProductFilter) -> tuple[list[Product], int]:
        conditions = build_product_conditions(flt)
        column = _SORT_COLUMNS[flt.sort_by]
        ordering = asc(column) if flt.sort_order == "asc" else desc(column)

        stmt = _with_listing_relations(
            select(Product)
            .where(*conditions)
            # Tie-break on id so pages are stable when the sort column has duplicates.
            .order_by(ordering, Product.id)
            .offset(flt.offset)
            .limit(flt.per_page)
        )
        products = list((await self._session.execute(stmt)).scalars().all())

        count_stmt = select(func.count()).select_from(Product).where(*conditions)
        total = int((await self._session.execute(count_stmt)).scalar_one())
        return products, total

    async def get(
        self,
        product_id: uuid.UUID,
        *,
        with_relations: bool = True,
        refresh: bool = False,
    ) -> Product | None:
        stmt = select(Product).where(Product.id == product_id)
        if with_relations:
            stmt = _with_listing_relations(stmt)
        if refresh:
            # Reload relationships on an instance already in the identity map (after writes).
            stmt = stmt.execution_options(populate_existing=True)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_many_for_update(self, product_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Product]:
        ids = list(product_ids)
        if not ids:
            return {}
        stmt = (
            select(Product)
            .where(Product.id.in_(ids))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {p.id: p for p in (await self._session.execute(stmt)).scalars().all()}

    async def get_by_sku(self, sku: str) -> Product | None:
        stmt = select(Product).where(Product.sku == sku)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def related(self, product: Product, *, limit: int = 4) -> list[Product]:
        if product.category_id is None:
            return []
        stmt = _with_listing_relations(
            select(Product)
            .where(
                Product.category_id == product.category_id,
                Product.id != product.id,
                Product.is_active.is_(True),
            )
            .order_by(desc(Product.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def featured(self, *, limit: int = 6) -> list[Product]:
        stmt = _with_listing_relations(
            select(Product)
            .where(
                Product.is_active.is_(True),
                Product.model3d_id.is_not(None),
                Product.stock > 0,
            )
            .order_by(desc(Product.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def search(self, query: str, *, limit: int = 5) -> list[Product]:
        stmt = (
            select(Product)
            .where(
                Product.is_active.is_(True),
                or_(
                    Product.name.icontains(query, autoescape=True),
                    Product.sku.icontains(query, autoescape=True),
                ),
            )
            .options(selectinload(Product.images))
            .order_by(Product.name)
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def ratings(self, product_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, RatingSummary]:
        # One grouped query instead of an aggregate per product.
        if not product_ids:
            return {}
        stmt = (
            select(Review.product_id, func.avg(Review.rating), func.count(Review.id))
            .where(Review.product_id.in_(product_ids))
            .group_by(Review.product_id)
        )
        rows = (await self._session.execute(stmt)).all()
        summaries = {pid: RatingSummary(average=None, count=0) for pid in product_ids}
        for pid, avg, count in rows:
            summaries[pid] = RatingSummary(
                average=round(float(avg), 2) if avg is not None else None, count=int(count)
            )
        return summaries

    async def create(self, *, images: list[dict[str, Any]] | None = None, **fields: Any) -> Product:
        product = Product(**fields)
        product.images = [ProductImage(**img) for img in images or []]
        self._session.add(product)
        await self._session.flush()
        return product

    async def update(
        self,
        product: Product,
        *,
        images: list[dict[str, Any]] | None = None,
        **fields: Any,
    ) -> Product:
        for name, value in fields.items():
            setattr(product, name, value)
        if images is not None:
            # Image updates replace the full set; delete-orphan cascade removes the old rows.
            product.images = [ProductImage(**img) for img in images]
        await self._session.flush()
        return product

    async def delete(self, product: Product) -> None:
        await self._session.delete(product)
        await self._session.flush()

    async def count(self, *conditions: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(Product).where(*conditions)
        return int((await self._session.execute(stmt)).scalar_one())

    async def top_selling(self, *, limit: int = 5) -> list[tuple[Product, int]]:
        sold = func.sum(OrderItem.quantity).label("sold")
        stmt = (
            select(OrderItem.product_id, sold)
            .where(OrderItem.product_id.is_not(None))
            .group_by(OrderItem.product_id)
            .order_by(desc(sold))
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).all()
        if not rows:
            return []
        products_stmt = _with_listing_relations(
            select(Product).where(Product.id.in_([pid for pid, _ in rows]))
        )
        by_id = {p.id: p for p in (await self._session.execute(products_stmt)).scalars().all()}
        return [(by_id[pid], int(qty)) for pid, qty in rows if pid in by_id]


# --- Module Notes -----------------------------------------------------------
# `build_product_conditions` is kept free of session access so it can be unit-tested
# by compiling the resulting SQL.
