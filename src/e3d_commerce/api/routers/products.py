"""
e3d_commerce.api.routers.products

Public catalogue endpoints plus admin product management.

Responsibilities:
- Filtered/sorted/paginated listing, detail, featured and autocomplete search.
- 3D viewer configuration for products that have a model.
- Product reviews (read for everyone, write for signed-in customers).
- Admin create/update/delete.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from e3d_commerce.api import serializers
from e3d_commerce.api.deps import db_session, settings_dep
from e3d_commerce.auth.deps import get_principal, require_admin
from e3d_commerce.auth.models import Principal
from e3d_commerce.db.repositories.products import ProductFilter, SortField, SortOrder
from e3d_commerce.errors import NotFoundError
from e3d_commerce.services.products import (
    Pagination,
    ProductCreate,
    ProductService,
    ProductUpdate,
)
from e3d_commerce.services.reviews import ReviewCreate, ReviewService
from e3d_commerce.services.viewer import ViewerOptions, build_viewer_config
from e3d_commerce.settings import Settings

router = APIRouter(prefix="/v1/products", tags=["products"])


class ProductListQuery(BaseModel):
    search: str | None = Field(default=None, max_length=255)
    category_id: int | None = None
    brand_id: int | None = None
    min_price: Decimal | None = Field(default=None, ge=0)
    max_price: Decimal | None = Field(default=None, ge=0)
    has_3d_model: bool | None = None
    in_stock: bool | None = None
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1, le=100)

    @model_validator(mode="after")
    def _price_range(self) -> ProductListQuery:
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        return self

    def to_filter(self) -> ProductFilter:
        return ProductFilter(**self.model_dump())


def _service(session: AsyncSession, settings: Settings) -> ProductService:
    return ProductService(session=session, settings=settings)


@router.get("")
async def list_products(
    query: Annotated[ProductListQuery, Query()],
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    page = await _service(session, settings).list_page(query.to_filter())
    return {
        "products": [
            serializers.product_summary(p, page.ratings.get(p.id)) for p in page.products
        ],
        "pagination": page.pagination.as_dict(),
    }


@router.get("/featured")
async def featured_products(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> list[dict[str, Any]]:
    products, ratings = await _service(session, settings).featured()
    return [
        serializers.product_summary(
            p, ratings.get(p.id), image_limit=serializers.FEATURED_IMAGE_LIMIT
        )
        for p in products
    ]


@router.get("/search")
async def search_products(
    q: str = Query(min_length=1, max_length=255),
    limit: int = Query(default=5, ge=1, le=10),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> list[dict[str, Any]]:
    products = await _service(session, settings).search(q, limit=limit)
    return [
        {
            "id": str(p.id),
            "name": p.name,
            "sku": p.sku,
            "price": serializers.money(p.price),
            "has_3d_model": p.has_3d_model,
            "image": p.images[0].url if p.images else None,
        }
        for p in products
    ]


@router.post("", status_code=HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    product = await _service(session, settings).create(body, actor=principal.subject)
    return serializers.product_summary(product, image_limit=None)


@router.get("/{product_id}")
async def get_product(
    product_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    detail = await _service(session, settings).detail(product_id)
    body = serializers.product_summary(detail.product, detail.rating, image_limit=None)
    body["reviews"] = [serializers.review(r) for r in detail.reviews]
    body["related_products"] = [
        serializers.product_summary(p, detail.related_ratings.get(p.id)) for p in detail.related
    ]
    return body


@router.patch("/{product_id}")
async def update_product(
    product_id: uuid.UUID,
    body: ProductUpdate,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    product = await _service(session, settings).update(product_id, body, actor=principal.subject)
    return serializers.product_summary(product, image_limit=None)


@router.delete("/{product_id}")
async def delete_product(
    product_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    await _service(session, settings).delete(product_id, actor=principal.subject)
    return {"success": True, "id": str(product_id)}


@router.get("/{product_id}/viewer")
async def product_viewer(
    product_id: uuid.UUID,
    options: Annotated[ViewerOptions, Query()],
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    product = await _service(session, settings).get(product_id)
    if product.model3d is None:
        raise NotFoundError("This product has no 3D model")
    return {
        "product_id": str(product.id),
        "name": product.name,
        **build_viewer_config(product.model3d, settings, options),
    }


@router.get("/{product_id}/reviews")
async def list_reviews(
    product_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=50),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    reviews, total = await ReviewService(session=session).list_page(
        product_id, page=page, per_page=per_page
    )
    return {
        "reviews": [serializers.review(r) for r in reviews],
        "pagination": Pagination(page=page, per_page=per_page, total_count=total).as_dict(),
    }


@router.post("/{product_id}/reviews", status_code=HTTP_201_CREATED)
async def create_review(
    product_id: uuid.UUID,
    body: ReviewCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    review = await ReviewService(session=session).create(
        user_id=principal.user_id, product_id=product_id, body=body
    )
    return serializers.review(review)
