"""
e3d_commerce.db.repositories.carts

Repository for the per-user server-side cart.

Responsibilities:
- Lazily create a user's cart row.
- Load cart lines together with their products.
- Upsert / delete individual lines.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from e3d_commerce.db.models import Cart, CartItem, Product


class CartRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_or_create(self, user_id: uuid.UUID) -> Cart:
        stmt = (
            select(Cart)
            .where(Cart.user_id == user_id)
            .options(
                selectinload(Cart.items)
                .selectinload(CartItem.product)
                .selectinload(Product.images)
            )
            # Line edits happen through this repo; always read the current rows.
            .execution_options(populate_existing=True)
        )
        cart = (await self._session.execute(stmt)).scalar_one_or_none()
        if cart is None:
            cart = Cart(user_id=user_id)
            cart.items = []
            self._session.add(cart)
            await self._session.flush()
        return cart

    async def set_quantity(self, cart: Cart, product: Product, quantity: int) -> None:
        for item in cart.items:
            if item.product_id == product.id:
                item.quantity = quantity
                break
        else:
            cart.items.append(CartItem(product_id=product.id, product=product, quantity=quantity))
        await self._session.flush()

    async def remove(self, cart: Cart, product_id: uuid.UUID) -> bool:
        for item in list(cart.items):
            if item.product_id == product_id:
                cart.items.remove(item)
                await self._session.flush()
                return True
        return False

    async def clear(self, cart: Cart) -> None:
        # delete-orphan cascade issues the DELETEs on flush.
        cart.items.clear()
        await self._session.flush()
