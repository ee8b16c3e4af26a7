"""
e3d_commerce.services.products

Catalogue reads and admin product management.

Responsibilities:
- Paginated listing with rating aggregates and pagination metadata.
- Product detail with newest reviews and related products.
- Admin create/update/delete with reference and uniqueness checks.
- Stock and 3D-coverage statistics for the admin dashboard.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, HttpUrl
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Product, Review
from e3d_commerce.db.repositories.catalog import CatalogRepo
from e3d_commerce.db.repositories.products import ProductFilter, ProductRepo, RatingSummary
from e3d_commerce.db.repositories.reviews import ReviewRepo
from e3d_commerce.errors import ConflictError, InvalidInputError, NotFoundError
from e3d_commerce.observability.logging import get_logger
from e3d_commerce.settings import Settings

log = get_logger(__name__)

DETAIL_REVIEW_LIMIT = 10
RELATED_LIMIT = 4


class ProductImageInput(BaseModel):
    url: HttpUrl
    alt_text: str | None = Field(default=None, max_length=255)
    sort_order: int = Field(default=0, ge=0)

    def to_fields(self) -> dict[str, Any]:
        return {"url": str(self.url), "alt_text": self.alt_text, "sort_order": self.sort_order}


class ProductCreate(BaseModel):
    name: str = Field(min_length=3, max_length=255)
    sku: str = Field(min_length=3, max_length=64)
    description: str | None = None
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    is_active: bool = True
    brand_id: int | None = None
    category_id: int | None = None
    model3d_id: uuid.UUID | None = None
    images: list[ProductImageInput] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=255)
    sku: str | None = Field(default=None, min_length=3, max_length=64)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    stock: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    brand_id: int | None = None
    category_id: int | None = None
    model3d_id: uuid.UUID | None = None
    images: list[ProductImageInput] | None = None


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int
    per_page: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.per_page) if self.total_count else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
            "has_next_page": self.has_next_page,
            "has_previous_page": self.has_previous_page,
        }


@dataclass(frozen=True, slots=True)
class ProductPage:
    products: list[Product]
    ratings: dict[uuid.UUID, RatingSummary]
    pagination: Pagination


@dataclass(frozen=True, slots=True)
class ProductDetail:
    product: Product
    rating: RatingSummary
    reviews: list[Review]
    related: list[Product]
    related_ratings: dict[uuid.UUID, RatingSummary]


@dataclass(frozen=True, slots=True)
class ProductStats:
    total: int
    low_stock: int
    out_of_stock: int
    with_3d_model: int
    without_3d_model: int
    top_selling: list[tuple[Product, int]]


def _sku_taken(sku: str) -> ConflictError:
    return ConflictError("A product with this SKU already exists", details={"sku": sku})


class ProductService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._products = ProductRepo(session)
        self._catalog = CatalogRepo(session)
        self._reviews = ReviewRepo(session)

    async def list_page(self, flt: ProductFilter) -> ProductPage:
        products, total = await self._products.list_page(flt)
        ratings = await self._products.ratings([p.id for p in products])
        return ProductPage(
            products=products,
            ratings=ratings,
            pagination=Pagination(page=flt.page, per_page=flt.per_page, total_count=total),
        )

    async def get(self, product_id: uuid.UUID) -> Product:
        product = await self._products.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def detail(self, product_id: uuid.UUID) -> ProductDetail:
        product = await self.get(product_id)
        related = await self._products.related(product, limit=RELATED_LIMIT)
        ratings = await self._products.ratings([product.id, *(p.id for p in related)])
        reviews = await self._reviews.list_for_product(product.id, limit=DETAIL_REVIEW_LIMIT)
        return ProductDetail(
            product=product,
            rating=ratings[product.id],
            reviews=reviews,
            related=related,
            related_ratings=ratings,
        )

    async def featured(self) -> tuple[list[Product], dict[uuid.UUID, RatingSummary]]:
        products = await self._products.featured()
        return products, await self._products.ratings([p.id for p in products])

    async def search(self, query: str, *, limit: int = 5) -> list[Product]:
        return await self._products.search(query, limit=limit)

    async def _check_references(self, fields: dict[str, Any]) -> None:
        if (
            fields.get("brand_id") is not None
            and await self._catalog.get_brand(fields["brand_id"]) is None
        ):
            raise InvalidInputError("Brand not found", details={"brand_id": fields["brand_id"]})
        if (
            fields.get("category_id") is not None
            and await self._catalog.get_category(fields["category_id"]) is None
        ):
            raise InvalidInputError(
                "Category not found", details={"category_id": fields["category_id"]}
            )
        if (
            fields.get("model3d_id") is not None
            and await self._catalog.get_model3d(fields["model3d_id"]) is None
        ):
            raise InvalidInputError(
                "3D model not found", details={"model3d_id": str(fields["model3d_id"])}
            )

    async def create(self, body: ProductCreate, *, actor: str) -> Product:
        fields = body.model_dump(exclude={"images"})
        if await self._products.get_by_sku(body.sku) is not None:
            raise _sku_taken(body.sku)
        await self._check_references(fields)

        try:
            product = await self._products.create(
                images=[img.to_fields() for img in body.images], **fields
            )
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise _sku_taken(body.sku) from exc
        log.info("product_created", product_id=str(product.id), sku=product.sku, actor=actor)
        return await self._reload(product.id)

    async def update(self, product_id: uuid.UUID, body: ProductUpdate, *, actor: str) -> Product:
        product = await self.get(product_id)
        # Only fields the client sent are applied; explicit nulls clear references.
        fields = body.model_dump(exclude_unset=True, exclude={"images"})
        for required in ("name", "sku", "price", "stock", "is_active"):
            if required in fields and fields[required] is None:
                raise InvalidInputError(f"{required} cannot be null")
        if "sku" in fields and fields["sku"] != product.sku:
            if await self._products.get_by_sku(fields["sku"]) is not None:
                raise _sku_taken(fields["sku"])
        await self._check_references(fields)

        images = None
        if "images" in body.model_fields_set and body.images is not None:
            images = [img.to_fields() for img in body.images]
        sku = fields.get("sku", product.sku)
        try:
            await self._products.update(product, images=images, **fields)
            await self._session.commit()
        except IntegrityError as exc:
            # SKU is the only unique column a client can set.
            await self._session.rollback()
            raise _sku_taken(sku) from exc
        log.info(
            "product_updated",
            product_id=str(product_id),
            fields=sorted(body.model_fields_set),
            actor=actor,
        )
        return await self._reload(product_id)

    async def delete(self, product_id: uuid.UUID, *, actor: str) -> None:
        product = await self._products.get(product_id, with_relations=False)
        if product is None:
            raise NotFoundError("Product not found")
        await self._products.delete(product)
        await self._session.commit()
        log.info("product_deleted", product_id=str(product_id), actor=actor)

    async def _reload(self, product_id: uuid.UUID) -> Product:
        product = await self._products.get(product_id, refresh=True)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def stats(self) -> ProductStats:
        threshold = self._settings.low_stock_threshold
        total = await self._products.count()
        with_model = await self._products.count(Product.model3d_id.is_not(None))
        return ProductStats(
            total=total,
            low_stock=await self._products.count(Product.stock > 0, Product.stock <= threshold),
            out_of_stock=await self._products.count(Product.stock == 0),
            with_3d_model=with_model,
            without_3d_model=total - with_model,
            top_selling=await self._products.top_selling(limit=5),
        )


# --- Module Notes -----------------------------------------------------------
# Writes re-read the product with `refresh=True` so brand/category/model3d reflect
# the new foreign keys before the response is serialized.
