"""
e3d_commerce.services.checkout

Multi-step checkout validation and order placement.

Responsibilities:
- Pydantic models for each checkout step (shipping, billing, payment, review).
- Validate one step at a time so clients can gate "Next" on the server's rules.
- Turn the signed-in user's cart into an `Order` in a single transaction:
  re-price from the catalogue, check stock, decrement it, clear the cart.
"""

from __future__ import annotations

import enum
import re
import uuid
from typing import Any

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from e3d_commerce.db.models import Address, Order, OrderItem, OrderStatus, PaymentMethod
from e3d_commerce.db.repositories.carts import CartRepo
from e3d_commerce.db.repositories.orders import OrderRepo
from e3d_commerce.db.repositories.products import ProductRepo
from e3d_commerce.db.repositories.users import UserRepo
from e3d_commerce.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    validation_details,
)
from e3d_commerce.observability.logging import get_logger
from e3d_commerce.services.cart import Cart, CartLine, compute_totals, to_money
from e3d_commerce.settings import Settings

log = get_logger(__name__)

_ADDRESS_FIELDS = (
    "full_name",
    "email",
    "phone",
    "address1",
    "city",
    "state",
    "postal_code",
    "country",
)


def _blank_to_none(value: Any) -> Any:
    # Form clients submit untouched inputs as "", which means "not provided".
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ShippingInfo(BaseModel):
    full_name: str = Field(min_length=2, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=10, max_length=32)
    address1: str = Field(min_length=5, max_length=255)
    address2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=2, max_length=128)
    state: str = Field(min_length=2, max_length=128)
    postal_code: str = Field(min_length=5, max_length=32)
    country: str = Field(min_length=2, max_length=64)
    save_address: bool = False

    def address(self) -> dict[str, Any]:
        return self.model_dump(exclude={"save_address"}, mode="json")


class BillingInfo(BaseModel):
    same_as_shipping: bool = True
    full_name: str | None = Field(default=None, min_length=2, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, min_length=10, max_length=32)
    address1: str | None = Field(default=None, min_length=5, max_length=255)
    address2: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, min_length=2, max_length=128)
    state: str | None = Field(default=None, min_length=2, max_length=128)
    postal_code: str | None = Field(default=None, min_length=5, max_length=32)
    country: str | None = Field(default=None, min_length=2, max_length=64)

    @field_validator(*_ADDRESS_FIELDS, "address2", mode="before")
    @classmethod
    def _blank_fields_are_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def _require_address_unless_same(self) -> BillingInfo:
        if self.same_as_shipping:
            return self
        if not all(getattr(self, name) for name in _ADDRESS_FIELDS):
            raise ValueError("Billing address is required")
        return self

    def address(self) -> dict[str, Any]:
        return self.model_dump(exclude={"same_as_shipping"}, mode="json")


_CARD_NUMBER = re.compile(r"^\d{16}$")
_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")
_CVV = re.compile(r"^\d{3,4}$")


class PaymentInfo(BaseModel):
    payment_method: PaymentMethod
    card_holder: str | None = Field(default=None, min_length=2, max_length=255)
    card_number: str | None = None
    expiry_date: str | None = None
    cvv: str | None = None
    save_payment_method: bool = False

    @field_validator("card_holder", "expiry_date", "cvv", mode="before")
    @classmethod
    def _blank_fields_are_missing(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("card_number", mode="before")
    @classmethod
    def _normalize_card_number(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if isinstance(value, str):
            value = re.sub(r"[\s-]", "", value)
            if not _CARD_NUMBER.match(value):
                raise ValueError("Valid card number is required")
        return value

    @field_validator("expiry_date")
    @classmethod
    def _check_expiry(cls, value: str | None) -> str | None:
        if value is not None and not _EXPIRY.match(value):
            raise ValueError("Valid expiry date (MM/YY) is required")
        return value

    @field_validator("cvv")
    @classmethod
    def _check_cvv(cls, value: str | None) -> str | None:
        if value is not None and not _CVV.match(value):
            raise ValueError("Valid CVV is required")
        return value

    @model_validator(mode="after")
    def _require_card_details(self) -> PaymentInfo:
        if self.payment_method is not PaymentMethod.credit_card:
            return self
        if not (self.card_holder and self.card_number and self.expiry_date and self.cvv):
            raise ValueError("Card details are required")
        return self

    @property
    def card_last4(self) -> str | None:
        return self.card_number[-4:] if self.card_number else None


class ReviewInfo(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)
    terms_accepted: bool = Field(default=False, validate_default=True)

    @field_validator("terms_accepted")
    @classmethod
    def _terms_must_be_accepted(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("You must accept the terms and conditions")
        return value


class CheckoutRequest(ReviewInfo):
    """All steps at once; the review step's notes and terms live on the request itself."""

    shipping: ShippingInfo
    billing: BillingInfo = Field(default_factory=BillingInfo)
    payment: PaymentInfo

    def billing_address(self) -> dict[str, Any]:
        if self.billing.same_as_shipping:
            return self.shipping.address()
        return self.billing.address()


class CheckoutStep(enum.StrEnum):
    shipping = "shipping"
    billing = "billing"
    payment = "payment"
    review = "review"

    @property
    def next_step(self) -> CheckoutStep | None:
        order = list(CheckoutStep)
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None


_STEP_MODELS: dict[CheckoutStep, type[BaseModel]] = {
    CheckoutStep.shipping: ShippingInfo,
    CheckoutStep.billing: BillingInfo,
    CheckoutStep.payment: PaymentInfo,
    CheckoutStep.review: ReviewInfo,
}


def validate_step(step: CheckoutStep, payload: dict[str, Any]) -> list[dict[str, Any]]:
    try:
        _STEP_MODELS[step].model_validate(payload)
    except ValidationError as exc:
        return validation_details(exc.errors())
    return []


class CheckoutService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._carts = CartRepo(session)
        self._products = ProductRepo(session)
        self._orders = OrderRepo(session)
        self._users = UserRepo(session)

    async def place_order(self, *, user_id: uuid.UUID, checkout: CheckoutRequest) -> Order:
        cart_row = await self._carts.get_or_create(user_id)
        if not cart_row.items:
            raise InvalidInputError("Your cart is empty")

        quantities = {item.product_id: item.quantity for item in cart_row.items}
        # Lock the rows we are about to decrement (no-op on SQLite).
        products = await self._products.get_many_for_update(quantities)

        cart = Cart()
        problems: list[dict[str, Any]] = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                problems.append({"product_id": str(product_id), "reason": "unavailable"})
                continue
            if product.stock < quantity:
                problems.append(
                    {
                        "product_id": str(product_id),
                        "reason": "insufficient_stock",
                        "available": product.stock,
                        "requested": quantity,
                    }
                )
                continue
            cart.add_item(
                CartLine(
                    product_id=str(product.id),
                    name=product.name,
                    price=to_money(product.price),
                    sku=product.sku,
                ),
                quantity,
            )
        if problems:
            raise ConflictError("Some items in your cart are unavailable", details=problems)

        totals = compute_totals(
            cart,
            shipping_rate=self._settings.shipping_rate,
            tax_rate=self._settings.tax_rate,
        )
        order = Order(
            user_id=user_id,
            status=OrderStatus.pending,
            subtotal=totals.subtotal,
            shipping=totals.shipping,
            tax=totals.tax,
            total_amount=totals.total,
            payment_method=checkout.payment.payment_method,
            card_last4=checkout.payment.card_last4,
            shipping_address=checkout.shipping.address(),
            billing_address=checkout.billing_address(),
            notes=checkout.notes,
        )
        order.items = [
            OrderItem(
                product_id=uuid.UUID(line.product_id),
                product_name=line.name,
                sku=line.sku or "",
                quantity=line.quantity,
                unit_price=line.price,
            )
            for line in cart.items
        ]
        for line in cart.items:
            products[uuid.UUID(line.product_id)].stock -= line.quantity

        await self._orders.add(order)
        if checkout.shipping.save_address:
            await self._save_shipping_address(user_id, checkout.shipping)
        await self._carts.clear(cart_row)
        await self._session.commit()

        log.info(
            "order_placed",
            order_id=str(order.id),
            items=totals.items_count,
            total=str(totals.total),
            payment_method=order.payment_method.value,
        )
        return order

    async def _save_shipping_address(self, user_id: uuid.UUID, shipping: ShippingInfo) -> None:
        user = await self._users.get_with_addresses(user_id)
        if user is None:
            raise NotFoundError("User not found")
        for existing in user.addresses:
            if (
                existing.line1 == shipping.address1
                and existing.postal_code == shipping.postal_code
                and existing.country == shipping.country
            ):
                return
        await self._users.add_address(
            user,
            Address(
                line1=shipping.address1,
                line2=shipping.address2,
                city=shipping.city,
                state=shipping.state,
                postal_code=shipping.postal_code,
                country=shipping.country,
                is_default=not user.addresses,
            ),
        )


# --- Module Notes -----------------------------------------------------------
# Checkout is a single commit: either the order exists, stock is decremented and the
# cart is empty, or nothing changed and the caller sees a 4xx.
