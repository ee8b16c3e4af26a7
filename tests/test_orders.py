from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from fastapi import FastAPI

from e3d_commerce.db.models import Order, OrderStatus, PaymentMethod, utcnow
from e3d_commerce.db.repositories.users import UserRepo
from e3d_commerce.db.session import session_scope
from e3d_commerce.services.orders import can_transition
from helpers import CUSTOMER, login, product_by_sku, register


def test_transition_table() -> None:
    assert can_transition(OrderStatus.pending, OrderStatus.processing)
    assert can_transition(OrderStatus.processing, OrderStatus.cancelled)
    assert can_transition(OrderStatus.shipped, OrderStatus.completed)
    assert not can_transition(OrderStatus.shipped, OrderStatus.cancelled)
    assert not can_transition(OrderStatus.completed, OrderStatus.pending)
    assert not can_transition(OrderStatus.pending, OrderStatus.pending)


@pytest.mark.asyncio
async def test_order_history_is_private(
    client: httpx.AsyncClient, customer_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    r = await client.get("/v1/orders", headers=customer_headers)
    orders = r.json()["orders"]
    assert [o["status"] for o in orders] == ["processing", "completed"]
    completed = orders[1]
    assert completed["subtotal"] == 599.98
    assert completed["total_amount"] == 651.98
    assert completed["completed_at"] is not None

    assert (await register(client, "other@example.com")).status_code == 201
    other = await login(client, "other@example.com", "s3cret-pass")
    assert (await client.get("/v1/orders", headers=other)).json()["orders"] == []
    r = await client.get(f"/v1/orders/{completed['id']}", headers=other)
    assert r.status_code == 404

    r = await client.get(f"/v1/orders/{completed['id']}", headers=admin_headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_order_history_pages_through_every_order(
    app: FastAPI, client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    async with session_scope(app.state.sessionmaker) as session:
        customer = await UserRepo(session).get_by_email(CUSTOMER[0])
        session.add_all(
            Order(
                user_id=customer.id,
                status=OrderStatus.pending,
                subtotal=Decimal("1.00"),
                total_amount=Decimal("11.07"),
                payment_method=PaymentMethod.paypal,
                placed_at=utcnow() - timedelta(minutes=i + 1),
            )
            for i in range(60)
        )

    r = await client.get("/v1/orders", params={"per_page": 20}, headers=customer_headers)
    body = r.json()
    assert len(body["orders"]) == 20
    assert body["pagination"]["total_count"] == 62
    assert body["pagination"]["total_pages"] == 4

    r = await client.get("/v1/orders", params={"per_page": 20, "page": 4}, headers=customer_headers)
    body = r.json()
    assert [o["status"] for o in body["orders"]] == ["processing", "completed"]
    assert body["pagination"]["has_next_page"] is False

    seen: set[str] = set()
    for page in range(1, 5):
        r = await client.get(
            "/v1/orders", params={"per_page": 20, "page": page}, headers=customer_headers
        )
        seen.update(o["id"] for o in r.json()["orders"])
    assert len(seen) == 62

    r = await client.get("/v1/orders", params={"per_page": 101}, headers=customer_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_fulfilment_path(
    client: httpx.AsyncClient, customer_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    processing = (await client.get("/v1/orders", headers=customer_headers)).json()["orders"][0]
    url = f"/v1/orders/{processing['id']}/status"

    r = await client.patch(url, json={"status": "shipped"}, headers=customer_headers)
    assert r.status_code == 403

    r = await client.patch(url, json={"status": "shipped"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "shipped"
    assert r.json()["shipped_at"] is not None

    r = await client.patch(url, json={"status": "cancelled"}, headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["error"]["message"] == "Cannot change order status from shipped to cancelled"

    r = await client.patch(url, json={"status": "completed"}, headers=admin_headers)
    assert r.json()["completed_at"] is not None

    r = await client.patch(url, json={"status": "lost"}, headers=admin_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_cancel_restores_stock(
    client: httpx.AsyncClient, customer_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    laptop_before = await product_by_sku(client, "LAPTOP-001")
    checkout = {
        "shipping": {
            "full_name": "John Customer",
            "email": "customer@example.com",
            "phone": "+1 555 123 4567",
            "address1": "456 Customer Ave",
            "city": "New York",
            "state": "NY",
            "postal_code": "10001",
            "country": "USA",
        },
        "payment": {"payment_method": "paypal"},
        "terms_accepted": True,
    }
    order = (await client.post("/v1/checkout", json=checkout, headers=customer_headers)).json()
    assert order["card_last4"] is None
    assert (await product_by_sku(client, "LAPTOP-001"))["stock"] == laptop_before["stock"] - 1

    r = await client.patch(
        f"/v1/orders/{order['id']}/status", json={"status": "cancelled"}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["cancelled_at"] is not None
    assert (await product_by_sku(client, "LAPTOP-001"))["stock"] == laptop_before["stock"]


@pytest.mark.asyncio
async def test_admin_dashboard_and_stats(
    client: httpx.AsyncClient, admin_headers: dict[str, str]
) -> None:
    r = await client.get("/v1/admin/dashboard", headers=admin_headers)
    assert r.status_code == 200
    dashboard = r.json()
    # 651.98 (completed) + 1079.99 (processing)
    assert dashboard["total_revenue"] == 1731.97
    assert dashboard["total_revenue_display"] == "$1,731.97"
    assert dashboard["order_count"] == 2
    assert dashboard["customer_count"] == 1
    assert dashboard["orders_by_status"] == {
        "pending": 0,
        "processing": 1,
        "shipped": 0,
        "completed": 1,
        "cancelled": 0,
    }
    assert len(dashboard["recent_orders"]) == 2

    r = await client.get("/v1/admin/products/stats", headers=admin_headers)
    stats = r.json()
    assert stats["total_products"] == 5
    assert stats["low_stock"] == 0
    assert stats["out_of_stock"] == 0
    assert stats["with_3d_model"] == 5
    assert stats["without_3d_model"] == 0
    assert sorted(p["sku"] for p in stats["top_selling"]) == ["CHAIR-001", "PHONE-001", "TABLE-001"]
