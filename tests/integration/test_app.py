"""Integration tests for the application factory and ambient endpoints."""

from __future__ import annotations

import pytest

from storefront.app import create_app
from storefront.common.config import settings


async def test_health(client) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    body = await response.get_json()
    assert body["status"] == "ok"
    assert set(body["services"]) == {"identity", "products", "orders"}
    assert response.headers["X-Instance-ID"] == settings.INSTANCE_ID


async def test_metrics_count_requests_by_route(client) -> None:
    await client.get("/products/999")

    response = await client.get("/metrics")

    text = (await response.get_data()).decode()
    assert response.status_code == 200
    assert 'endpoint="/products/<int:product_id>"' in text


async def test_single_service_app_only_serves_its_routes() -> None:
    app = create_app(services=["identity"])
    client = app.test_client()

    assert (await client.get("/products")).status_code == 404
    assert (await client.get("/auth/validate")).status_code == 401


def test_unknown_service_is_rejected() -> None:
    with pytest.raises(ValueError):
        create_app(services=["billing"])
