"""
e3d_commerce.services.reviews

Product reviews: paginated reads and one review per customer per product.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Review
from e3d_commerce.db.repositories.products import ProductRepo
from e3d_commerce.db.repositories.reviews import ReviewRepo
from e3d_commerce.db.repositories.users import UserRepo
from e3d_commerce.errors import ConflictError, NotFoundError
from e3d_commerce.observability.logging import get_logger

log = get_logger(__name__)

ALREADY_REVIEWED = "You have already reviewed this product"


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class ReviewService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._reviews = ReviewRepo(session)
        self._products = ProductRepo(session)
        self._users = UserRepo(session)

    async def _require_product(self, product_id: uuid.UUID) -> None:
        product = await self._products.get(product_id, with_relations=False)
        if product is None:
            raise NotFoundError("Product not found")

    async def list_page(
        self, product_id: uuid.UUID, *, page: int, per_page: int
    ) -> tuple[list[Review], int]:
        await self._require_product(product_id)
        reviews = await self._reviews.list_for_product(
            product_id, limit=per_page, offset=(page - 1) * per_page
        )
        return reviews, await self._reviews.count_for_product(product_id)

    async def create(self, *, user_id: uuid.UUID, product_id: uuid.UUID, body: ReviewCreate) -> Review:
        await self._require_product(product_id)
        if await self._reviews.get_for_user(user_id=user_id, product_id=product_id) is not None:
            raise ConflictError(ALREADY_REVIEWED)
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        try:
            review = await self._reviews.add(
                Review(user=user, product_id=product_id, rating=body.rating, comment=body.comment)
            )
            await self._session.commit()
        except IntegrityError as exc:
            # A concurrent request stored the same review after the check above.
            await self._session.rollback()
            raise ConflictError(ALREADY_REVIEWED) from exc
        log.info("review_created", product_id=str(product_id), rating=body.rating)
        return review
