"""
e3d_commerce.services.admin

Read-only aggregates for the admin dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Order, RoleName
from e3d_commerce.db.repositories.orders import OrderRepo
from e3d_commerce.db.repositories.users import UserRepo


@dataclass(frozen=True, slots=True)
class Dashboard:
    total_revenue: Decimal
    order_count: int
    customer_count: int
    orders_by_status: dict[str, int]
    recent_orders: list[Order]


class AdminService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._orders = OrderRepo(session)
        self._users = UserRepo(session)

    async def dashboard(self, *, recent: int = 5) -> Dashboard:
        by_status = await self._orders.count_by_status()
        return Dashboard(
            total_revenue=await self._orders.revenue(),
            order_count=sum(by_status.values()),
            customer_count=await self._users.count_with_role(RoleName.customer.value),
            orders_by_status=by_status,
            recent_orders=await self._orders.recent(limit=recent),
        )
