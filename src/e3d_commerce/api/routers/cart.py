"""
e3d_commerce.api.routers.cart

The signed-in user's shopping cart.

Responsibilities:
- Read the cart with derived totals.
- Add, change and remove lines; empty the cart.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.api import serializers
from e3d_commerce.api.deps import db_session, settings_dep
from e3d_commerce.auth.deps import get_principal
from e3d_commerce.auth.models import Principal
from e3d_commerce.services.cart import CartService
from e3d_commerce.settings import Settings

router = APIRouter(prefix="/v1/cart", tags=["cart"])


class AddItemRequest(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=999)


class UpdateItemRequest(BaseModel):
    # 0 removes the line.
    quantity: int = Field(ge=0, le=999)


def _service(session: AsyncSession, settings: Settings) -> CartService:
    return CartService(session=session, settings=settings)


@router.get("")
async def get_cart(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    return serializers.cart(await _service(session, settings).get(principal.user_id))


@router.post("/items")
async def add_item(
    body: AddItemRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    view = await _service(session, settings).add_item(
        principal.user_id, body.product_id, body.quantity
    )
    return serializers.cart(view)


@router.patch("/items/{product_id}")
async def update_item(
    product_id: uuid.UUID,
    body: UpdateItemRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    view = await _service(session, settings).update_item(
        principal.user_id, product_id, body.quantity
    )
    return serializers.cart(view)


@router.delete("/items/{product_id}")
async def remove_item(
    product_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    view = await _service(session, settings).remove_item(principal.user_id, product_id)
    return serializers.cart(view)


@router.delete("")
async def clear_cart(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    return serializers.cart(await _service(session, settings).clear(principal.user_id))
