"""
e3d_commerce.services.orders

Order history and fulfilment status changes.

Responsibilities:
- Scope order reads to their owner (admins see everything).
- Apply admin status changes along the allowed fulfilment path, stamping
  shipped/completed/cancelled times and returning stock on cancellation.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.auth.models import Principal
from e3d_commerce.db.models import Order, OrderStatus, utcnow
from e3d_commerce.db.repositories.orders import OrderRepo
from e3d_commerce.db.repositories.products import ProductRepo
from e3d_commerce.errors import ConflictError, NotFoundError
from e3d_commerce.observability.logging import get_logger

log = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.processing, OrderStatus.cancelled}),
    OrderStatus.processing: frozenset({OrderStatus.shipped, OrderStatus.cancelled}),
    OrderStatus.shipped: frozenset({OrderStatus.completed}),
    OrderStatus.completed: frozenset(),
    OrderStatus.cancelled: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class OrderService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._orders = OrderRepo(session)
        self._products = ProductRepo(session)

    async def list_page(
        self, principal: Principal, *, page: int, per_page: int
    ) -> tuple[list[Order], int]:
        orders = await self._orders.list_for_user(
            principal.user_id, limit=per_page, offset=(page - 1) * per_page
        )
        return orders, await self._orders.count_for_user(principal.user_id)

    async def get_for(self, principal: Principal, order_id: uuid.UUID) -> Order:
        order = await self._orders.get(order_id)
        # Other customers' orders are reported as missing rather than forbidden.
        if order is None or (order.user_id != principal.user_id and not principal.is_admin):
            raise NotFoundError("Order not found")
        return order

    async def update_status(self, *, order_id: uuid.UUID, status: OrderStatus, actor: str) -> Order:
        order = await self._orders.get(order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order not found")
        if not can_transition(order.status, status):
            raise ConflictError(
                f"Cannot change order status from {order.status.value} to {status.value}"
            )

        now = utcnow()
        if status is OrderStatus.shipped:
            order.shipped_at = now
        elif status is OrderStatus.completed:
            order.completed_at = now
        elif status is OrderStatus.cancelled:
            order.cancelled_at = now
            await self._restock(order)

        previous = order.status
        order.status = status
        await self._session.commit()
        log.info(
            "order_status_changed",
            order_id=str(order.id),
            previous=previous.value,
            status=status.value,
            actor=actor,
        )
        return order

    async def _restock(self, order: Order) -> None:
        quantities: dict[uuid.UUID, int] = {}
        for item in order.items:
            if item.product_id is not None:
                quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        products = await self._products.get_many_for_update(quantities)
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is not None:
                product.stock += quantity
