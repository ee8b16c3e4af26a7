"""
e3d_commerce.api.serializers

ORM row -> JSON dict helpers shared by several routers.

Money leaves the API as JSON numbers (two decimal places); timestamps as ISO-8601.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from e3d_commerce.db.models import Order, Product, Review, User
from e3d_commerce.db.repositories.products import RatingSummary
from e3d_commerce.services.cart import CartView

LIST_IMAGE_LIMIT = 5
FEATURED_IMAGE_LIMIT = 3


def money(value: Decimal) -> float:
    return float(value)


def _images(product: Product, limit: int | None = None) -> list[dict[str, Any]]:
    images = product.images if limit is None else product.images[:limit]
    return [
        {"id": img.id, "url": img.url, "alt_text": img.alt_text, "sort_order": img.sort_order}
        for img in images
    ]


def product_summary(
    product: Product,
    rating: RatingSummary | None = None,
    *,
    image_limit: int | None = LIST_IMAGE_LIMIT,
) -> dict[str, Any]:
    rating = rating or RatingSummary(average=None, count=0)
    return {
        "id": str(product.id),
        "name": product.name,
        "sku": product.sku,
        "description": product.description,
        "price": money(product.price),
        "stock": product.stock,
        "is_active": product.is_active,
        "brand": {"id": product.brand.id, "name": product.brand.name} if product.brand else None,
        "category": (
            {"id": product.category.id, "name": product.category.name, "slug": product.category.slug}
            if product.category
            else None
        ),
        "images": _images(product, image_limit),
        "model3d": (
            {
                "id": str(product.model3d.id),
                "preview_url": product.model3d.preview_url,
                "format": product.model3d.format,
            }
            if product.model3d
            else None
        ),
        "has_3d_model": product.has_3d_model,
        "rating": rating.average,
        "review_count": rating.count,
        "created_at": product.created_at.isoformat(),
        "updated_at": product.updated_at.isoformat(),
    }


def review(r: Review) -> dict[str, Any]:
    return {
        "id": str(r.id),
        "rating": r.rating,
        "comment": r.comment,
        "created_at": r.created_at.isoformat(),
        "user": {
            "id": str(r.user.id),
            "full_name": r.user.full_name,
            "avatar_url": r.user.avatar_url,
        },
    }


def user_profile(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "phone": user.phone,
        "avatar_url": user.avatar_url,
        "roles": user.role_names,
        "created_at": user.created_at.isoformat(),
    }


def order(o: Order) -> dict[str, Any]:
    return {
        "id": str(o.id),
        "user_id": str(o.user_id),
        "status": o.status.value,
        "subtotal": money(o.subtotal),
        "shipping": money(o.shipping),
        "tax": money(o.tax),
        "total_amount": money(o.total_amount),
        "payment_method": o.payment_method.value,
        "card_last4": o.card_last4,
        "shipping_address": o.shipping_address,
        "billing_address": o.billing_address,
        "notes": o.notes,
        "items": [
            {
                "product_id": str(item.product_id) if item.product_id else None,
                "product_name": item.product_name,
                "sku": item.sku,
                "quantity": item.quantity,
                "unit_price": money(item.unit_price),
                "line_total": money(item.unit_price * item.quantity),
            }
            for item in o.items
        ],
        "placed_at": o.placed_at.isoformat(),
        "shipped_at": o.shipped_at.isoformat() if o.shipped_at else None,
        "completed_at": o.completed_at.isoformat() if o.completed_at else None,
        "cancelled_at": o.cancelled_at.isoformat() if o.cancelled_at else None,
    }


def cart(view: CartView) -> dict[str, Any]:
    totals = view.totals
    return {
        "items": [
            {
                "product_id": line.product_id,
                "name": line.name,
                "sku": line.sku,
                "price": money(line.price),
                "quantity": line.quantity,
                "image": line.image,
                "line_total": money(line.line_total),
            }
            for line in view.cart.items
        ],
        "items_count": totals.items_count,
        "subtotal": money(totals.subtotal),
        "shipping": money(totals.shipping),
        "tax": money(totals.tax),
        "total": money(totals.total),
    }
