from __future__ import annotations

from typing import Any

import httpx
import pytest
from pydantic import ValidationError

from e3d_commerce.db.models import PaymentMethod
from e3d_commerce.services.checkout import (
    BillingInfo,
    CheckoutStep,
    PaymentInfo,
    validate_step,
)
from helpers import product_by_sku

SHIPPING = {
    "full_name": "John Customer",
    "email": "customer@example.com",
    "phone": "+1 555 123 4567",
    "address1": "456 Customer Ave",
    "address2": "Apt 101",
    "city": "New York",
    "state": "NY",
    "postal_code": "10001",
    "country": "USA",
}

CARD = {
    "payment_method": "credit_card",
    "card_holder": "John Customer",
    "card_number": "4242 4242 4242 4242",
    "expiry_date": "12/29",
    "cvv": "123",
}


def _checkout(**overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "shipping": dict(SHIPPING),
        "billing": {"same_as_shipping": True},
        "payment": dict(CARD),
        "notes": "Leave at the door",
        "terms_accepted": True,
    }
    body.update(overrides)
    return body


def test_card_number_is_normalized() -> None:
    payment = PaymentInfo.model_validate(CARD)
    assert payment.card_number == "4242424242424242"
    assert payment.card_last4 == "4242"


def test_card_details_required_only_for_cards() -> None:
    with pytest.raises(ValidationError, match="Card details are required"):
        PaymentInfo.model_validate({"payment_method": "credit_card", "card_holder": "J Doe"})

    paypal = PaymentInfo.model_validate({"payment_method": "paypal", "card_number": ""})
    assert paypal.payment_method is PaymentMethod.paypal
    assert paypal.card_last4 is None


def test_billing_blank_fields_count_as_missing() -> None:
    assert BillingInfo.model_validate({"same_as_shipping": True, "city": ""}).city is None
    with pytest.raises(ValidationError, match="Billing address is required"):
        BillingInfo.model_validate({"same_as_shipping": False, "full_name": "", "city": "Boston"})


def test_validate_step_reports_fields() -> None:
    errors = validate_step(CheckoutStep.shipping, {**SHIPPING, "postal_code": "123"})
    assert [e["field"] for e in errors] == ["postal_code"]

    assert validate_step(CheckoutStep.payment, {**CARD, "expiry_date": "13/29"})[0]["message"] == (
        "Valid expiry date (MM/YY) is required"
    )
    assert validate_step(CheckoutStep.review, {})[0]["message"] == (
        "You must accept the terms and conditions"
    )
    assert validate_step(CheckoutStep.review, {"terms_accepted": True}) == []
    assert CheckoutStep.payment.next_step is CheckoutStep.review
    assert CheckoutStep.review.next_step is None


@pytest.mark.asyncio
async def test_step_validation_endpoint(
    client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    r = await client.post(
        "/v1/checkout/steps/shipping/validate", json=SHIPPING, headers=customer_headers
    )
    assert r.status_code == 200
    assert r.json() == {"step": "shipping", "valid": True, "errors": [], "next_step": "billing"}

    r = await client.post(
        "/v1/checkout/steps/billing/validate",
        json={"same_as_shipping": False},
        headers=customer_headers,
    )
    body = r.json()
    assert body["valid"] is False
    assert body["next_step"] is None
    assert body["errors"][0]["message"] == "Billing address is required"

    r = await client.post("/v1/checkout/steps/confirm/validate", json={}, headers=customer_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_place_order_from_cart(
    client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    chair_before = await product_by_sku(client, "CHAIR-001")

    r = await client.post("/v1/checkout", json=_checkout(), headers=customer_headers)
    assert r.status_code == 201, r.text
    order = r.json()
    assert order["status"] == "pending"
    assert order["subtotal"] == 2249.98
    assert order["shipping"] == 10.0
    assert order["tax"] == 157.5
    assert order["total_amount"] == 2417.48
    assert order["card_last4"] == "4242"
    assert order["billing_address"] == order["shipping_address"]
    assert order["shipping_address"]["postal_code"] == "10001"
    assert sorted(i["sku"] for i in order["items"]) == ["CHAIR-001", "LAPTOP-001"]
    assert "card_number" not in str(order)

    chair_after = await product_by_sku(client, "CHAIR-001")
    assert chair_after["stock"] == chair_before["stock"] - 1

    cart = (await client.get("/v1/cart", headers=customer_headers)).json()
    assert cart["items"] == []

    r = await client.post("/v1/checkout", json=_checkout(), headers=customer_headers)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Your cart is empty"

    r = await client.get("/v1/orders", headers=customer_headers)
    assert r.json()["orders"][0]["id"] == order["id"]


@pytest.mark.asyncio
async def test_place_order_requires_terms_and_valid_payment(
    client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    r = await client.post(
        "/v1/checkout", json=_checkout(terms_accepted=False), headers=customer_headers
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    bad_card = {**CARD, "card_number": "1234"}
    r = await client.post(
        "/v1/checkout", json=_checkout(payment=bad_card), headers=customer_headers
    )
    assert r.status_code == 400
    fields = {d["field"] for d in r.json()["error"]["details"]}
    assert "body.payment.card_number" in fields


@pytest.mark.asyncio
async def test_place_order_rejects_insufficient_stock(
    client: httpx.AsyncClient,
    customer_headers: dict[str, str],
    admin_headers: dict[str, str],
) -> None:
    laptop = await product_by_sku(client, "LAPTOP-001")
    r = await client.patch(
        f"/v1/products/{laptop['id']}", json={"stock": 0}, headers=admin_headers
    )
    assert r.status_code == 200

    r = await client.post("/v1/checkout", json=_checkout(), headers=customer_headers)
    assert r.status_code == 409
    details = r.json()["error"]["details"]
    assert details == [
        {
            "product_id": laptop["id"],
            "reason": "insufficient_stock",
            "available": 0,
            "requested": 1,
        }
    ]

    # Nothing changed: the cart still holds both lines.
    cart = (await client.get("/v1/cart", headers=customer_headers)).json()
    assert cart["items_count"] == 2


@pytest.mark.asyncio
async def test_save_address_adds_it_once(
    client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    shipping = {**SHIPPING, "address1": "1 New Street", "postal_code": "02110", "save_address": True}
    r = await client.post(
        "/v1/checkout", json=_checkout(shipping=shipping), headers=customer_headers
    )
    assert r.status_code == 201
    assert "save_address" not in r.json()["shipping_address"]
