from __future__ import annotations

import uuid
from decimal import Decimal

import httpx
import pytest

from e3d_commerce.db.repositories.products import (
    ProductFilter,
    ProductRepo,
    build_product_conditions,
)
from e3d_commerce.db.repositories.reviews import ReviewRepo
from e3d_commerce.services.products import Pagination
from helpers import product_by_sku


def test_conditions_always_filter_active() -> None:
    conditions = build_product_conditions(ProductFilter())
    assert len(conditions) == 1
    assert "is_active" in str(conditions[0])


def test_conditions_for_every_filter() -> None:
    flt = ProductFilter(
        search="sofa",
        category_id=1,
        brand_id=2,
        min_price=Decimal("10"),
        max_price=Decimal("100"),
        has_3d_model=False,
        in_stock=True,
    )
    sql = [str(c) for c in build_product_conditions(flt)]
    assert len(sql) == 8
    assert "lower(products.name) LIKE" in sql[1]
    assert "products.model3d_id IS NULL" in sql[6]
    assert "products.stock >" in sql[7]
    assert ProductFilter(page=3, per_page=20).offset == 40


def test_pagination_metadata() -> None:
    p = Pagination(page=2, per_page=2, total_count=5)
    assert (p.total_pages, p.has_next_page, p.has_previous_page) == (3, True, True)
    empty = Pagination(page=1, per_page=20, total_count=0)
    assert (empty.total_pages, empty.has_next_page, empty.has_previous_page) == (0, False, False)


@pytest.mark.asyncio
async def test_listing_pagination_and_sorting(client: httpx.AsyncClient, seeded: None) -> None:
    r = await client.get(
        "/v1/products", params={"sort_by": "price", "sort_order": "asc", "per_page": 2}
    )
    assert r.status_code == 200
    body = r.json()
    assert [p["sku"] for p in body["products"]] == ["TABLE-001", "CHAIR-001"]
    assert body["pagination"] == {
        "page": 1,
        "per_page": 2,
        "total_count": 5,
        "total_pages": 3,
        "has_next_page": True,
        "has_previous_page": False,
    }

    r = await client.get(
        "/v1/products", params={"sort_by": "price", "sort_order": "asc", "per_page": 2, "page": 3}
    )
    assert [p["sku"] for p in r.json()["products"]] == ["LAPTOP-001"]
    assert r.json()["pagination"]["has_next_page"] is False

    r = await client.get("/v1/products", params={"page": 10})
    assert r.json()["products"] == []
    assert r.json()["pagination"]["total_count"] == 5


@pytest.mark.asyncio
async def test_listing_filters(client: httpx.AsyncClient, seeded: None) -> None:
    async def skus(**params) -> list[str]:
        r = await client.get("/v1/products", params=params)
        assert r.status_code == 200, r.text
        return sorted(p["sku"] for p in r.json()["products"])

    assert await skus(min_price=300, max_price=1000) == ["CHAIR-001", "PHONE-001"]
    assert await skus(search="sofa") == ["SOFA-001"]
    assert await skus(has_3d_model="false") == []
    assert await skus(in_stock="true") == [
        "CHAIR-001",
        "LAPTOP-001",
        "PHONE-001",
        "SOFA-001",
        "TABLE-001",
    ]

    categories = (await client.get("/v1/categories")).json()
    electronics = next(c for c in categories if c["slug"] == "electronics")
    laptops = next(c for c in electronics["children"] if c["slug"] == "laptops")
    assert await skus(category_id=laptops["id"]) == ["LAPTOP-001"]

    brands = (await client.get("/v1/brands")).json()
    tech = next(b for b in brands if b["name"] == "Tech Innovations")
    assert await skus(brand_id=tech["id"]) == ["LAPTOP-001", "PHONE-001"]


@pytest.mark.asyncio
async def test_listing_rejects_bad_paging(client: httpx.AsyncClient) -> None:
    for params in ({"per_page": 101}, {"per_page": 0}, {"page": 0}, {"sort_by": "stock"}):
        r = await client.get("/v1/products", params=params)
        assert r.status_code == 400, params
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    r = await client.get("/v1/products", params={"min_price": 500, "max_price": 100})
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert [d["message"] for d in error["details"]] == ["min_price must not exceed max_price"]

    r = await client.get("/v1/products", params={"min_price": 100, "max_price": 100})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_product_detail(client: httpx.AsyncClient, seeded: None) -> None:
    chair = await product_by_sku(client, "CHAIR-001")
    assert chair["rating"] == 5.0
    assert chair["review_count"] == 1

    r = await client.get(f"/v1/products/{chair['id']}")
    assert r.status_code == 200
    body = r.json()
    assert body["brand"]["name"] == "Comfort Living"
    assert body["category"]["slug"] == "chairs"
    assert [img["sort_order"] for img in body["images"]] == [1, 2]
    assert body["model3d"]["format"] == "glb"
    assert body["has_3d_model"] is True
    assert body["reviews"][0]["user"]["full_name"] == "John Customer"
    assert body["related_products"] == []

    r = await client.get(f"/v1/products/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["error"] == {"code": "NOT_FOUND", "message": "Product not found"}


@pytest.mark.asyncio
async def test_featured_and_search(client: httpx.AsyncClient, seeded: None) -> None:
    featured = (await client.get("/v1/products/featured")).json()
    assert len(featured) == 5
    assert all(p["has_3d_model"] and len(p["images"]) <= 3 for p in featured)

    r = await client.get("/v1/products/search", params={"q": "pro"})
    assert [p["name"] for p in r.json()] == ["Smartphone X Pro", "Ultrabook Pro 15"]
    assert r.json()[0]["image"] == "https://example.com/images/smartphone-x-1.jpg"

    r = await client.get("/v1/products/search", params={"q": "pro", "limit": 1})
    assert len(r.json()) == 1

    assert (await client.get("/v1/products/search", params={"q": ""})).status_code == 400
    assert (
        await client.get("/v1/products/search", params={"q": "pro", "limit": 11})
    ).status_code == 400


@pytest.mark.asyncio
async def test_admin_product_lifecycle(
    client: httpx.AsyncClient, admin_headers: dict[str, str]
) -> None:
    chair = await product_by_sku(client, "CHAIR-001")
    category_id = chair["category"]["id"]

    payload = {
        "name": "Lounge Chair",
        "sku": "CHAIR-002",
        "price": 499.5,
        "stock": 3,
        "category_id": category_id,
        "images": [{"url": "https://example.com/images/lounge-1.jpg", "sort_order": 1}],
    }
    r = await client.post("/v1/products", json=payload, headers=admin_headers)
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["category"]["slug"] == "chairs"
    assert created["has_3d_model"] is False
    assert created["price"] == 499.5

    r = await client.post("/v1/products", json=payload, headers=admin_headers)
    assert r.status_code == 409

    r = await client.post(
        "/v1/products", json={**payload, "sku": "CHAIR-003", "brand_id": 9999}, headers=admin_headers
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_INPUT"

    detail = (await client.get(f"/v1/products/{chair['id']}")).json()
    assert [p["sku"] for p in detail["related_products"]] == ["CHAIR-002"]

    r = await client.patch(
        f"/v1/products/{created['id']}",
        json={
            "price": 450,
            "images": [
                {"url": "https://example.com/images/lounge-2.jpg", "sort_order": 2},
                {"url": "https://example.com/images/lounge-3.jpg", "sort_order": 1},
            ],
        },
        headers=admin_headers,
    )
    assert r.status_code == 200
    updated = r.json()
    assert updated["price"] == 450.0
    assert updated["name"] == "Lounge Chair"
    assert [img["url"] for img in updated["images"]] == [
        "https://example.com/images/lounge-3.jpg",
        "https://example.com/images/lounge-2.jpg",
    ]

    r = await client.get(f"/v1/products/{created['id']}/viewer")
    assert r.status_code == 404

    r = await client.delete(f"/v1/products/{created['id']}", headers=admin_headers)
    assert r.json() == {"success": True, "id": created["id"]}
    assert (await client.get(f"/v1/products/{created['id']}")).status_code == 404
    assert (
        await client.delete(f"/v1/products/{created['id']}", headers=admin_headers)
    ).status_code == 404


@pytest.mark.asyncio
async def test_product_writes_require_admin(
    client: httpx.AsyncClient, customer_headers: dict[str, str]
) -> None:
    sofa = await product_by_sku(client, "SOFA-001")
    r = await client.delete(f"/v1/products/{sofa['id']}", headers=customer_headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_reviews(client: httpx.AsyncClient, customer_headers: dict[str, str]) -> None:
    sofa = await product_by_sku(client, "SOFA-001")
    chair = await product_by_sku(client, "CHAIR-001")

    r = await client.post(
        f"/v1/products/{sofa['id']}/reviews",
        json={"rating": 4, "comment": "Comfortable."},
        headers=customer_headers,
    )
    assert r.status_code == 201
    assert r.json()["user"]["full_name"] == "John Customer"

    r = await client.post(
        f"/v1/products/{chair['id']}/reviews", json={"rating": 3}, headers=customer_headers
    )
    assert r.status_code == 409

    r = await client.post(
        f"/v1/products/{sofa['id']}/reviews", json={"rating": 6}, headers=customer_headers
    )
    assert r.status_code == 400

    r = await client.get(f"/v1/products/{sofa['id']}/reviews")
    assert r.json()["pagination"]["total_count"] == 1
    assert (await product_by_sku(client, "SOFA-001"))["rating"] == 4.0


@pytest.mark.asyncio
async def test_catalog(client: httpx.AsyncClient, admin_headers: dict[str, str]) -> None:
    brands = (await client.get("/v1/brands")).json()
    assert [b["name"] for b in brands] == [
        "Comfort Living",
        "Luxury Collections",
        "Modern Designs",
        "Tech Innovations",
    ]

    tree = (await client.get("/v1/categories")).json()
    assert sorted(c["slug"] for c in tree) == ["electronics", "furniture"]
    furniture = next(c for c in tree if c["slug"] == "furniture")
    assert sorted(c["slug"] for c in furniture["children"]) == ["chairs", "sofas", "tables"]

    r = await client.post(
        "/v1/categories",
        json={"name": "Beds", "slug": "beds", "parent_id": furniture["id"]},
        headers=admin_headers,
    )
    assert r.status_code == 201
    assert r.json()["parent_id"] == furniture["id"]

    r = await client.post(
        "/v1/categories", json={"name": "Beds", "slug": "beds"}, headers=admin_headers
    )
    assert r.status_code == 409

    r = await client.post("/v1/brands", json={"name": "Modern Designs"}, headers=admin_headers)
    assert r.status_code == 409


async def _nothing(*args, **kwargs) -> None:
    return None


@pytest.mark.asyncio
async def test_review_race_is_a_conflict(
    client: httpx.AsyncClient,
    customer_headers: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    chair = await product_by_sku(client, "CHAIR-001")

    # The existence check misses a review that another request committed after it ran.
    monkeypatch.setattr(ReviewRepo, "get_for_user", _nothing)
    r = await client.post(
        f"/v1/products/{chair['id']}/reviews", json={"rating": 2}, headers=customer_headers
    )
    assert r.status_code == 409
    assert r.json()["error"] == {
        "code": "CONFLICT",
        "message": "You have already reviewed this product",
    }

    r = await client.get(f"/v1/products/{chair['id']}/reviews")
    assert [review["rating"] for review in r.json()["reviews"]] == [5]


@pytest.mark.asyncio
async def test_sku_race_is_a_conflict(
    client: httpx.AsyncClient,
    admin_headers: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    table = await product_by_sku(client, "TABLE-001")
    monkeypatch.setattr(ProductRepo, "get_by_sku", _nothing)

    r = await client.post(
        "/v1/products",
        json={"name": "Another Chair", "sku": "CHAIR-001", "price": 10},
        headers=admin_headers,
    )
    assert r.status_code == 409
    assert r.json()["error"]["details"] == {"sku": "CHAIR-001"}

    r = await client.patch(
        f"/v1/products/{table['id']}", json={"sku": "CHAIR-001"}, headers=admin_headers
    )
    assert r.status_code == 409
    assert (await product_by_sku(client, "TABLE-001"))["id"] == table["id"]
