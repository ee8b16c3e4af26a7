"""
e3d_commerce.db.repositories.orders

Repository for `Order` entities.

Responsibilities:
- Persist placed orders with their line items.
- Query a customer's order history and admin summaries.
"""

from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Order, OrderStatus


class OrderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, order: Order) -> Order:
        self._session.add(order)
        await self._session.flush()
        return order

    async def get(self, order_id: uuid.UUID, *, for_update: bool = False) -> Order | None:
        return await self._session.get(Order, order_id, with_for_update=for_update)

    async def list_for_user(
        self, user_id: uuid.UUID, *, limit: int = 20, offset: int = 0
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(desc(Order.placed_at), desc(Order.id))
            .offset(offset)
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        stmt = select(func.count(Order.id)).where(Order.user_id == user_id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def recent(self, *, limit: int = 5) -> list[Order]:
        stmt = select(Order).order_by(desc(Order.placed_at)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        counts = {status.value: 0 for status in OrderStatus}
        for status, n in (await self._session.execute(stmt)).all():
            counts[OrderStatus(status).value] = int(n)
        return counts

    async def revenue(self) -> Decimal:
        # Cancelled orders never count towards revenue.
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.status != OrderStatus.cancelled
        )
        total = Decimal(str((await self._session.execute(stmt)).scalar_one()))
        return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# --- Module Notes -----------------------------------------------------------
# Line items are loaded with `selectin` on the relationship, so every query here
# returns orders ready for serialization.
