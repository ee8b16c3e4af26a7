"""
e3d_commerce.api.routers.admin

Admin dashboard endpoints (admin role only).

Responsibilities:
- Product stock / 3D coverage statistics.
- Sales overview: revenue, order and customer counts, recent orders.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.api import serializers
from e3d_commerce.api.deps import db_session, settings_dep
from e3d_commerce.auth.deps import require_admin
from e3d_commerce.formatting import format_currency
from e3d_commerce.services.admin import AdminService
from e3d_commerce.services.products import ProductService
from e3d_commerce.settings import Settings

router = APIRouter(
    prefix="/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/products/stats")
async def product_stats(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    stats = await ProductService(session=session, settings=settings).stats()
    return {
        "total_products": stats.total,
        "low_stock": stats.low_stock,
        "out_of_stock": stats.out_of_stock,
        "with_3d_model": stats.with_3d_model,
        "without_3d_model": stats.without_3d_model,
        "low_stock_threshold": settings.low_stock_threshold,
        "top_selling": [
            {"id": str(p.id), "name": p.name, "sku": p.sku, "quantity_sold": qty}
            for p, qty in stats.top_selling
        ],
    }


@router.get("/dashboard")
async def dashboard(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    data = await AdminService(session=session).dashboard()
    return {
        "total_revenue": serializers.money(data.total_revenue),
        "total_revenue_display": format_currency(data.total_revenue, settings.currency),
        "order_count": data.order_count,
        "customer_count": data.customer_count,
        "orders_by_status": data.orders_by_status,
        "recent_orders": [serializers.order(o) for o in data.recent_orders],
    }
