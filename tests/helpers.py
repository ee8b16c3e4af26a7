"""
tests.helpers

HTTP helpers shared by the API tests.
"""

from __future__ import annotations

from typing import Any

import httpx

CUSTOMER = ("customer@example.com", "customer123")
ADMIN = ("admin@example.com", "admin123")


async def login(client: httpx.AsyncClient, email: str, password: str) -> dict[str, str]:
    r = await client.post("/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


async def register(
    client: httpx.AsyncClient,
    email: str,
    password: str = "s3cret-pass",
    full_name: str = "Jane Shopper",
) -> httpx.Response:
    return await client.post(
        "/v1/auth/register",
        json={
            "email": email,
            "password": password,
            "confirm_password": password,
            "full_name": full_name,
        },
    )


async def product_by_sku(client: httpx.AsyncClient, sku: str) -> dict[str, Any]:
    r = await client.get("/v1/products", params={"search": sku})
    assert r.status_code == 200, r.text
    matches = [p for p in r.json()["products"] if p["sku"] == sku]
    assert len(matches) == 1
    return matches[0]
