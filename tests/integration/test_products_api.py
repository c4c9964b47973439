"""Integration tests for the /products endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from storefront.common.database import AsyncSessionLocal
from storefront.common.events import ProductCreated, StockUpdated
from storefront.products.model import Product

LAMP = {
    "name": "Desk Lamp",
    "description": "Warm white LED lamp",
    "price": 24.5,
    "stock": 10,
    "category": "Lighting",
    "image_url": "https://example.com/lamp.png",
}


async def create(client, headers, **overrides):
    response = await client.post("/products", json={**LAMP, **overrides}, headers=headers)
    assert response.status_code == 201
    return await response.get_json()


async def insert_products(count: int, **fields) -> None:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    async with AsyncSessionLocal() as session:
        for i in range(count):
            session.add(Product(
                name=fields.get("name", f"Product {i + 1}"),
                description=fields.get("description", ""),
                price=Decimal("1.00"),
                stock=1,
                category=fields.get("category", "General"),
                image_url="",
                is_active=fields.get("is_active", True),
                created_by=1,
                created_at=base + timedelta(minutes=i),
                updated_at=base + timedelta(minutes=i),
            ))
        await session.commit()


class TestCreate:
    """Tests for POST /products."""

    async def test_admin_creates_active_product_and_event(self, client, admin_headers, published) -> None:
        product = await create(client, admin_headers)

        assert product["is_active"] is True
        assert product["created_by"] == 1
        assert product["price"] == 24.5
        assert published == [
            ProductCreated(product_id=product["id"], name="Desk Lamp", price=Decimal("24.5"), stock=10)
        ]

    async def test_anonymous_is_unauthorized(self, client) -> None:
        response = await client.post("/products", json=LAMP)

        assert response.status_code == 401

    async def test_customer_is_forbidden(self, client, customer_headers) -> None:
        response = await client.post("/products", json=LAMP, headers=customer_headers)

        assert response.status_code == 403

    async def test_invalid_token_is_unauthorized(self, client) -> None:
        response = await client.post("/products", json=LAMP, headers={"Authorization": "Bearer junk"})

        assert response.status_code == 401

    async def test_missing_price_is_bad_request(self, client, admin_headers) -> None:
        response = await client.post("/products", json={"name": "x"}, headers=admin_headers)

        assert response.status_code == 400

    async def test_negative_stock_is_bad_request(self, client, admin_headers) -> None:
        response = await client.post("/products", json={**LAMP, "stock": -1}, headers=admin_headers)

        assert response.status_code == 400

    async def test_publish_failure_keeps_product(self, client, admin_headers, monkeypatch) -> None:
        from storefront.common import events

        async def broken_send(event):
            raise ConnectionError("kafka down")

        monkeypatch.setattr(events, "_send", broken_send)

        product = await create(client, admin_headers)
        response = await client.get(f"/products/{product['id']}")

        assert response.status_code == 200


class TestRead:
    """Tests for GET /products and GET /products/{id}."""

    async def test_get_missing_is_404(self, client) -> None:
        response = await client.get("/products/999")

        assert response.status_code == 404
        assert (await response.get_json())["error"] == "not_found"

    async def test_pagination_newest_first(self, client) -> None:
        await insert_products(25)

        response = await client.get("/products", query_string={"page": 2, "limit": 10})

        body = await response.get_json()
        assert body["total"] == 25
        assert body["page"] == 2
        assert body["limit"] == 10
        # Product 25 is the newest; page two holds the 11th..20th newest
        assert [p["name"] for p in body["items"]] == [f"Product {n}" for n in range(15, 5, -1)]

    async def test_list_excludes_inactive(self, client) -> None:
        await insert_products(2, name="Visible")
        await insert_products(3, name="Hidden", is_active=False)

        body = await (await client.get("/products")).get_json()

        assert body["total"] == 2
        assert {p["name"] for p in body["items"]} == {"Visible"}

    async def test_filter_by_category_and_search(self, client, admin_headers) -> None:
        await create(client, admin_headers, name="Floor Lamp", category="Lighting")
        await create(client, admin_headers, name="Oak Table", description="Solid oak", category="Furniture")
        await create(client, admin_headers, name="Chair", description="Matches the oak table", category="Furniture")

        by_category = await (await client.get("/products", query_string={"category": "Furniture"})).get_json()
        by_search = await (await client.get("/products", query_string={"search": "oak"})).get_json()
        both = await (
            await client.get("/products", query_string={"category": "Lighting", "search": "Oak"})
        ).get_json()

        assert {p["name"] for p in by_category["items"]} == {"Oak Table", "Chair"}
        assert {p["name"] for p in by_search["items"]} == {"Oak Table", "Chair"}
        assert both["total"] == 0

    async def test_bad_pagination_is_rejected(self, client) -> None:
        assert (await client.get("/products", query_string={"page": 0})).status_code == 400
        assert (await client.get("/products", query_string={"limit": "ten"})).status_code == 400
        assert (await client.get("/products", query_string={"limit": 1000})).status_code == 400


class TestUpdate:
    """Tests for PUT /products/{id}."""

    async def test_partial_update(self, client, admin_headers) -> None:
        product = await create(client, admin_headers)

        response = await client.put(f"/products/{product['id']}", json={"price": 30}, headers=admin_headers)

        body = await response.get_json()
        assert response.status_code == 200
        assert body["price"] == 30.0
        assert body["name"] == LAMP["name"]
        assert body["stock"] == LAMP["stock"]
        assert body["updated_at"] >= product["updated_at"]

    async def test_blank_name_is_rejected(self, client, admin_headers) -> None:
        product = await create(client, admin_headers)

        response = await client.put(f"/products/{product['id']}", json={"name": "  "}, headers=admin_headers)

        assert response.status_code == 400
        fetched = await (await client.get(f"/products/{product['id']}")).get_json()
        assert fetched["name"] == LAMP["name"]

    async def test_update_missing_is_404(self, client, admin_headers) -> None:
        response = await client.put("/products/999", json={"name": "x"}, headers=admin_headers)

        assert response.status_code == 404

    async def test_customer_cannot_update(self, client, admin_headers, customer_headers) -> None:
        product = await create(client, admin_headers)

        response = await client.put(f"/products/{product['id']}", json={"name": "x"}, headers=customer_headers)

        assert response.status_code == 403


class TestStock:
    """Tests for PATCH /products/{id}/stock."""

    async def test_adjust_stock_end_to_end(self, client, admin_headers, published) -> None:
        product = await create(client, admin_headers)

        response = await client.patch(
            f"/products/{product['id']}/stock", json={"delta": -3, "reason": "damaged"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert await response.get_json() == {"id": product["id"], "stock": 7, "reason": "damaged"}
        fetched = await (await client.get(f"/products/{product['id']}")).get_json()
        assert fetched["stock"] == 7
        assert published[-1] == StockUpdated(product_id=product["id"], new_stock=7)

    async def test_stock_never_goes_negative(self, client, admin_headers, published) -> None:
        product = await create(client, admin_headers)

        response = await client.patch(
            f"/products/{product['id']}/stock", json={"delta": -50, "reason": "audit"}, headers=admin_headers
        )

        assert (await response.get_json())["stock"] == 0
        assert published[-1].new_stock == 0

    async def test_non_integer_delta(self, client, admin_headers) -> None:
        product = await create(client, admin_headers)

        response = await client.patch(
            f"/products/{product['id']}/stock", json={"delta": "3"}, headers=admin_headers
        )

        assert response.status_code == 400

    async def test_missing_product(self, client, admin_headers) -> None:
        response = await client.patch("/products/999/stock", json={"delta": 1}, headers=admin_headers)

        assert response.status_code == 404


class TestDeleteAndCategories:
    """Tests for DELETE /products/{id} and GET /products/categories."""

    async def test_soft_delete(self, client, admin_headers) -> None:
        product = await create(client, admin_headers)

        response = await client.delete(f"/products/{product['id']}", headers=admin_headers)

        assert response.status_code == 204
        still_there = await (await client.get(f"/products/{product['id']}")).get_json()
        assert still_there["is_active"] is False
        listing = await (await client.get("/products")).get_json()
        assert listing["total"] == 0

    async def test_delete_missing(self, client, admin_headers) -> None:
        response = await client.delete("/products/999", headers=admin_headers)

        assert response.status_code == 404

    async def test_categories_are_distinct_and_active_only(self, client) -> None:
        await insert_products(3, category="Audio")
        await insert_products(1, category="Storage")
        await insert_products(2, category="Retired", is_active=False)
        await insert_products(1, category="Storage", is_active=False)

        response = await client.get("/products/categories")

        assert await response.get_json() == ["Audio", "Storage"]
