"""
e3d_commerce.seed

Sample data for local development: `python -m e3d_commerce.seed`.

Responsibilities:
- Create tables if needed and empty every table.
- Load users, catalogue, 3D models, a cart, orders and reviews.
- Log counts per entity and the elapsed time.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.auth.passwords import hash_password
from e3d_commerce.db.base import Base
from e3d_commerce.db.init_db import init_db
from e3d_commerce.db.models import (
    Address,
    Brand,
    Cart,
    CartItem,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    Product,
    ProductImage,
    ProductModel3D,
    Review,
    RoleName,
    User,
    utcnow,
)
from e3d_commerce.db.repositories.users import UserRepo
from e3d_commerce.db.session import create_engine, create_sessionmaker, session_scope
from e3d_commerce.observability.logging import configure_logging, get_logger
from e3d_commerce.services.cart import Cart as CartModel
from e3d_commerce.services.cart import CartLine, compute_totals
from e3d_commerce.settings import Settings, get_settings

log = get_logger(__name__)

BRANDS = [
    ("Modern Designs", "https://example.com/logos/modern-designs.png"),
    ("Comfort Living", "https://example.com/logos/comfort-living.png"),
    ("Tech Innovations", "https://example.com/logos/tech-innovations.png"),
    ("Luxury Collections", "https://example.com/logos/luxury-collections.png"),
]

# (parent slug, name, slug); parent None means top level.
CATEGORIES = [
    (None, "Furniture", "furniture"),
    (None, "Electronics", "electronics"),
    ("furniture", "Sofas", "sofas"),
    ("furniture", "Chairs", "chairs"),
    ("furniture", "Tables", "tables"),
    ("electronics", "Smartphones", "smartphones"),
    ("electronics", "Laptops", "laptops"),
]

MODELS = [
    ("furniture/sofas/modern-sofa.glb", "modern-sofa", 2_500_000, "draco"),
    ("furniture/chairs/ergonomic-chair.glb", "ergonomic-chair", 1_800_000, "draco"),
    ("furniture/tables/coffee-table.glb", "coffee-table", 2_200_000, "draco"),
    ("electronics/smartphones/smartphone-x.glb", "smartphone-x", 1_500_000, "meshopt"),
    ("electronics/laptops/ultrabook-pro.glb", "ultrabook-pro", 3_000_000, "meshopt"),
]


@dataclass(frozen=True)
class ProductSeed:
    name: str
    sku: str
    description: str
    price: str
    stock: int
    brand: str
    category: str
    image_slug: str
    views: tuple[str, ...]


PRODUCTS = [
    ProductSeed(
        "Modern Comfort Sofa",
        "SOFA-001",
        "A luxurious 3-seater sofa with premium fabric and modern design.",
        "1299.99",
        10,
        "Modern Designs",
        "sofas",
        "modern-sofa",
        ("Front View", "Side View", "Detail View"),
    ),
    ProductSeed(
        "Ergonomic Office Chair",
        "CHAIR-001",
        "Adjustable ergonomic chair with lumbar support and breathable mesh.",
        "349.99",
        25,
        "Comfort Living",
        "chairs",
        "ergonomic-chair",
        ("Front View", "Side View"),
    ),
    ProductSeed(
        "Minimalist Coffee Table",
        "TABLE-001",
        "Sleek coffee table with tempered glass top and solid wood legs.",
        "249.99",
        15,
        "Modern Designs",
        "tables",
        "coffee-table",
        ("Top View", "Side View"),
    ),
    ProductSeed(
        "Smartphone X Pro",
        "PHONE-001",
        "Latest flagship smartphone with 6.7-inch OLED display and 108MP camera.",
        "999.99",
        50,
        "Tech Innovations",
        "smartphones",
        "smartphone-x",
        ("Front View", "Back View", "Side View"),
    ),
    ProductSeed(
        "Ultrabook Pro 15",
        "LAPTOP-001",
        "Powerful ultrabook with 15-inch 4K display, 32GB RAM, and 1TB SSD.",
        "1899.99",
        20,
        "Tech Innovations",
        "laptops",
        "ultrabook-pro",
        ("Front View", "Side View"),
    ),
]


def _ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)


async def clear_all(session: AsyncSession) -> None:
    # Children before parents so foreign keys never dangle.
    for table in reversed(Base.metadata.sorted_tables):
        await session.execute(delete(table))


async def _create_users(session: AsyncSession) -> tuple[User, User]:
    users = UserRepo(session)
    admin_role = await users.get_or_create_role(RoleName.admin.value)
    customer_role = await users.get_or_create_role(RoleName.customer.value)

    admin = await users.create(
        email="admin@example.com",
        password_hash=hash_password("admin123"),
        full_name="Admin User",
        phone="+1234567890",
        roles=[admin_role],
    )
    await users.add_address(
        admin,
        Address(
            line1="123 Admin Street",
            city="San Francisco",
            postal_code="94105",
            country="USA",
            is_default=True,
        ),
    )

    customer = await users.create(
        email="customer@example.com",
        password_hash=hash_password("customer123"),
        full_name="John Customer",
        phone="+9876543210",
        roles=[customer_role],
    )
    await users.add_address(
        customer,
        Address(
            line1="456 Customer Ave",
            line2="Apt 101",
            city="New York",
            state="NY",
            postal_code="10001",
            country="USA",
            is_default=True,
        ),
    )
    await users.add_address(
        customer,
        Address(
            line1="789 Work Blvd",
            city="New York",
            state="NY",
            postal_code="10002",
            country="USA",
        ),
    )
    return admin, customer


def _address_snapshot(user: User) -> dict[str, Any]:
    address = next(a for a in user.addresses if a.is_default)
    return {
        "full_name": user.full_name,
        "email": user.email,
        "phone": user.phone,
        "address1": address.line1,
        "address2": address.line2,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": address.country,
    }


def _order(
    user: User,
    lines: list[tuple[Product, int]],
    *,
    status: OrderStatus,
    settings: Settings,
    placed_days_ago: int,
    shipped_days_ago: int | None = None,
    completed_days_ago: int | None = None,
) -> Order:
    cart = CartModel()
    for product, qty in lines:
        cart.add_item(
            CartLine(product_id=str(product.id), name=product.name, price=product.price), qty
        )
    totals = compute_totals(cart, shipping_rate=settings.shipping_rate, tax_rate=settings.tax_rate)
    address = _address_snapshot(user)
    order = Order(
        user_id=user.id,
        status=status,
        subtotal=totals.subtotal,
        shipping=totals.shipping,
        tax=totals.tax,
        total_amount=totals.total,
        payment_method=PaymentMethod.credit_card,
        card_last4="4242",
        shipping_address=address,
        billing_address=address,
        placed_at=_ago(placed_days_ago),
        shipped_at=_ago(shipped_days_ago) if shipped_days_ago is not None else None,
        completed_at=_ago(completed_days_ago) if completed_days_ago is not None else None,
    )
    order.items = [
        OrderItem(
            product_id=product.id,
            product_name=product.name,
            sku=product.sku,
            quantity=qty,
            unit_price=product.price,
        )
        for product, qty in lines
    ]
    return order


async def seed(session: AsyncSession, settings: Settings) -> dict[str, int]:
    """Replace all data with the sample dataset; returns created counts per entity."""
    await clear_all(session)

    _admin, customer = await _create_users(session)

    brands = {name: Brand(name=name, logo_url=logo) for name, logo in BRANDS}
    session.add_all(brands.values())

    categories: dict[str, Category] = {}
    for parent_slug, name, slug in CATEGORIES:
        category = Category(name=name, slug=slug)
        if parent_slug is not None:
            category.parent = categories[parent_slug]
        categories[slug] = category
    session.add_all(categories.values())

    models = [
        ProductModel3D(
            storage_key=key,
            preview_url=f"https://example.com/previews/{preview}.jpg",
            size_bytes=size,
            format="glb",
            compression=compression,
        )
        for key, preview, size, compression in MODELS
    ]
    session.add_all(models)

    products: list[Product] = []
    for item, model in zip(PRODUCTS, models, strict=True):
        product = Product(
            name=item.name,
            sku=item.sku,
            description=item.description,
            price=Decimal(item.price),
            stock=item.stock,
            brand=brands[item.brand],
            category=categories[item.category],
            model3d=model,
        )
        product.images = [
            ProductImage(
                url=f"https://example.com/images/{item.image_slug}-{i}.jpg",
                alt_text=f"{item.name} - {view}",
                sort_order=i,
            )
            for i, view in enumerate(item.views, start=1)
        ]
        products.append(product)
    session.add_all(products)
    await session.flush()

    _sofa, chair, table, phone, laptop = products
    cart = Cart(user_id=customer.id)
    cart.items = [CartItem(product=chair, quantity=1), CartItem(product=laptop, quantity=1)]
    session.add(cart)

    orders = [
        _order(
            customer,
            [(chair, 1), (table, 1)],
            status=OrderStatus.completed,
            settings=settings,
            placed_days_ago=30,
            shipped_days_ago=25,
            completed_days_ago=20,
        ),
        _order(
            customer,
            [(phone, 1)],
            status=OrderStatus.processing,
            settings=settings,
            placed_days_ago=2,
        ),
    ]
    session.add_all(orders)

    reviews = [
        Review(
            user=customer,
            product_id=chair.id,
            rating=5,
            comment="Excellent chair! Very comfortable for long working hours.",
            created_at=_ago(15),
        ),
        Review(
            user=customer,
            product_id=table.id,
            rating=4,
            comment="Beautiful table, but assembly was a bit challenging.",
            created_at=_ago(15),
        ),
    ]
    session.add_all(reviews)
    await session.flush()

    return {
        "roles": 2,
        "users": 2,
        "brands": len(brands),
        "categories": len(categories),
        "models_3d": len(models),
        "products": len(products),
        "cart_items": len(cart.items),
        "orders": len(orders),
        "reviews": len(reviews),
    }


async def run(settings: Settings) -> dict[str, int]:
    engine = create_engine(settings)
    try:
        await init_db(engine)
        async with session_scope(create_sessionmaker(engine)) as session:
            return await seed(session, settings)
    finally:
        await engine.dispose()


def main() -> None:
    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)
    log.info("seed_started", env=settings.env)
    started = time.perf_counter()
    counts = asyncio.run(run(settings))
    log.info("seed_finished", elapsed_s=round(time.perf_counter() - started, 3), **counts)


if __name__ == "__main__":
    main()
