"""
e3d_commerce.db.repositories.reviews

Repository for `Review` entities.

Responsibilities:
- Page through a product's reviews, newest first.
- Find a customer's existing review of a product.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Review


class ReviewRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_product(
        self, product_id: uuid.UUID, *, limit: int = 10, offset: int = 0
    ) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.product_id == product_id)
            .order_by(desc(Review.created_at), desc(Review.id))
            .offset(offset)
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_for_product(self, product_id: uuid.UUID) -> int:
        stmt = select(func.count(Review.id)).where(Review.product_id == product_id)
        return int((await self._session.execute(stmt)).scalar_one())

    async def get_for_user(self, *, user_id: uuid.UUID, product_id: uuid.UUID) -> Review | None:
        stmt = select(Review).where(Review.user_id == user_id, Review.product_id == product_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def add(self, review: Review) -> Review:
        self._session.add(review)
        await self._session.flush()
        return review
