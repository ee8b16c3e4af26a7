"""
e3d_commerce.api.routers.orders

Order history for customers and fulfilment status changes for admins.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.api import serializers
from e3d_commerce.api.deps import db_session
from e3d_commerce.auth.deps import get_principal, require_admin
from e3d_commerce.auth.models import Principal
from e3d_commerce.db.models import OrderStatus
from e3d_commerce.services.orders import OrderService
from e3d_commerce.services.products import Pagination

router = APIRouter(prefix="/v1/orders", tags=["orders"])


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


@router.get("")
async def list_orders(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    orders, total = await OrderService(session=session).list_page(
        principal, page=page, per_page=per_page
    )
    return {
        "orders": [serializers.order(o) for o in orders],
        "pagination": Pagination(page=page, per_page=per_page, total_count=total).as_dict(),
    }


@router.get("/{order_id}")
async def get_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return serializers.order(await OrderService(session=session).get_for(principal, order_id))


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: uuid.UUID,
    body: StatusUpdateRequest,
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    order = await OrderService(session=session).update_status(
        order_id=order_id, status=body.status, actor=principal.subject
    )
    return serializers.order(order)
