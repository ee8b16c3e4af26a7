"""
e3d_commerce.api.routers.catalog

Brands and categories (public reads, admin writes).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from e3d_commerce.api.deps import db_session
from e3d_commerce.auth.deps import require_admin
from e3d_commerce.auth.models import Principal
from e3d_commerce.services.catalog import BrandCreate, CatalogService, CategoryCreate

router = APIRouter(prefix="/v1", tags=["catalog"])


@router.get("/brands")
async def list_brands(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    brands = await CatalogService(session=session).brands()
    return [{"id": b.id, "name": b.name, "logo_url": b.logo_url} for b in brands]


@router.post("/brands", status_code=HTTP_201_CREATED)
async def create_brand(
    body: BrandCreate,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    brand = await CatalogService(session=session).create_brand(body, actor=principal.subject)
    return {"id": brand.id, "name": brand.name, "logo_url": brand.logo_url}


@router.get("/categories")
async def list_categories(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    return await CatalogService(session=session).categories()


@router.post("/categories", status_code=HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    category = await CatalogService(session=session).create_category(
        body, actor=principal.subject
    )
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "parent_id": category.parent_id,
    }
