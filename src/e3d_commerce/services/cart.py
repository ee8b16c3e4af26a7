"""
e3d_commerce.services.cart

Shopping cart domain + persistence service.

Responsibilities:
- `Cart`: an ordered product-id -> line mapping with add/update/remove and
  derived counts/subtotal.
- `compute_totals`: flat shipping + percentage tax on top of the subtotal.
- `CartService`: apply cart operations to the signed-in user's stored cart,
  checking the catalogue (active product, available stock) on every write.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Cart as CartRow
from e3d_commerce.db.models import Product
from e3d_commerce.db.repositories.carts import CartRepo
from e3d_commerce.db.repositories.products import ProductRepo
from e3d_commerce.errors import ConflictError, InvalidInputError, NotFoundError
from e3d_commerce.observability.logging import get_logger
from e3d_commerce.settings import Settings

log = get_logger(__name__)

CENT = Decimal("0.01")


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: str
    name: str
    price: Decimal
    quantity: int = 1
    image: str | None = None
    sku: str | None = None

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


@dataclass(slots=True)
class Cart:
    _lines: dict[str, CartLine] = field(default_factory=dict)

    @property
    def items(self) -> list[CartLine]:
        return list(self._lines.values())

    def add_item(self, line: CartLine, quantity: int | None = None) -> CartLine:
        qty = quantity if quantity is not None else line.quantity
        if qty <= 0:
            raise ValueError("quantity must be positive")
        existing = self._lines.get(line.product_id)
        if existing is not None:
            updated = replace(existing, quantity=existing.quantity + qty)
        else:
            updated = replace(line, quantity=qty)
        self._lines[line.product_id] = updated
        return updated

    def update_item(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(product_id)
            return
        existing = self._lines.get(product_id)
        if existing is not None:
            self._lines[product_id] = replace(existing, quantity=quantity)

    def remove_item(self, product_id: str) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def is_item_in_cart(self, product_id: str) -> bool:
        return product_id in self._lines

    def get_item(self, product_id: str) -> CartLine | None:
        return self._lines.get(product_id)

    @property
    def items_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((line.price * line.quantity for line in self._lines.values()), Decimal(0)))

    def __len__(self) -> int:
        return len(self._lines)


@dataclass(frozen=True, slots=True)
class CartTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    items_count: int


def compute_totals(
    cart: Cart,
    *,
    shipping_rate: Decimal = Decimal("10"),
    tax_rate: Decimal = Decimal("0.07"),
) -> CartTotals:
    subtotal = cart.subtotal
    # Flat-rate shipping applies only when there is something to ship.
    shipping = to_money(shipping_rate) if len(cart) > 0 else to_money(0)
    tax = to_money(subtotal * tax_rate)
    return CartTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=to_money(subtotal + shipping + tax),
        items_count=cart.items_count,
    )


def line_for_product(product: Product, quantity: int = 1) -> CartLine:
    return CartLine(
        product_id=str(product.id),
        name=product.name,
        price=to_money(product.price),
        quantity=quantity,
        image=product.images[0].url if product.images else None,
        sku=product.sku,
    )


def cart_from_row(row: CartRow) -> Cart:
    # Prices always come from the current catalogue, not from when the line was added.
    cart = Cart()
    for item in row.items:
        cart.add_item(line_for_product(item.product, item.quantity))
    return cart


@dataclass(frozen=True, slots=True)
class CartView:
    cart: Cart
    totals: CartTotals


class CartService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._carts = CartRepo(session)
        self._products = ProductRepo(session)

    def _view(self, row: CartRow) -> CartView:
        cart = cart_from_row(row)
        totals = compute_totals(
            cart,
            shipping_rate=self._settings.shipping_rate,
            tax_rate=self._settings.tax_rate,
        )
        return CartView(cart=cart, totals=totals)

    async def _active_product(self, product_id: uuid.UUID) -> Product:
        product = await self._products.get(product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product not found")
        return product

    async def get(self, user_id: uuid.UUID) -> CartView:
        row = await self._carts.get_or_create(user_id)
        await self._session.commit()
        return self._view(row)

    async def add_item(self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int = 1) -> CartView:
        if quantity <= 0:
            raise InvalidInputError("Quantity must be at least 1")
        product = await self._active_product(product_id)
        row = await self._carts.get_or_create(user_id)

        cart = cart_from_row(row)
        line = cart.add_item(line_for_product(product), quantity)
        if line.quantity > product.stock:
            raise ConflictError("Insufficient stock")

        await self._carts.set_quantity(row, product, line.quantity)
        await self._session.commit()
        log.info("cart_item_added", product_id=str(product_id), quantity=line.quantity)
        return self._view(row)

    async def update_item(self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> CartView:
        row = await self._carts.get_or_create(user_id)
        cart = cart_from_row(row)
        if not cart.is_item_in_cart(str(product_id)):
            raise NotFoundError("Item not in cart")

        if quantity <= 0:
            await self._carts.remove(row, product_id)
        else:
            product = await self._active_product(product_id)
            if quantity > product.stock:
                raise ConflictError("Insufficient stock")
            await self._carts.set_quantity(row, product, quantity)
        await self._session.commit()
        return self._view(row)

    async def remove_item(self, user_id: uuid.UUID, product_id: uuid.UUID) -> CartView:
        row = await self._carts.get_or_create(user_id)
        if not await self._carts.remove(row, product_id):
            raise NotFoundError("Item not in cart")
        await self._session.commit()
        return self._view(row)

    async def clear(self, user_id: uuid.UUID) -> CartView:
        row = await self._carts.get_or_create(user_id)
        await self._carts.clear(row)
        await self._session.commit()
        return self._view(row)


# --- Module Notes -----------------------------------------------------------
# `Cart` is storage-agnostic; `CartService` is the only place that knows carts are
# persisted in the `carts`/`cart_items` tables.
