"""
Unit tests for Catalog main service.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from service_catalog.app.caching.backends import InMemoryCacheBackend
from service_catalog.app.main import CatalogService, create_app
from service_catalog.app.messaging.memory import InMemoryTransport
from service_catalog.app.persistence.memory import InMemoryProductRepository
from shared.config import get_config


class TestCatalogService:
    """Test cases for CatalogService."""

    @pytest.fixture
    def transport(self):
        return InMemoryTransport()

    @pytest.fixture
    def catalog_service(self, seed_products, transport):
        config = get_config("catalog", 8020, consumer_max_attempts=2)
        return CatalogService(
            config,
            repository=InMemoryProductRepository(seed_products),
            cache=InMemoryCacheBackend(),
            transport=transport
        )

    @pytest.fixture
    def client(self, catalog_service):
        with TestClient(catalog_service.app) as client:
            yield client

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "catalog"
        assert "dead_letter" in data["capabilities"]

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"] == {"cache": "ok", "store": "ok", "transport": "ok"}

    def test_get_product(self, client):
        response = client.get("/products/1")
        assert response.status_code == 200
        assert response.json() == {"id": 1, "name": "A", "price": "10", "category": "x"}

    def test_get_missing_product_is_404(self, client):
        response = client.get("/products/999")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_get_all_products(self, client):
        response = client.get("/products")
        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [1, 2, 3]

    def test_create_product(self, client, transport, wait_until_sync):
        response = client.post(
            "/products",
            json={"name": "Sprocket", "price": "3.75", "category": "parts"}
        )
        assert response.status_code == 201
        assert response.json()["id"] == 4
        assert wait_until_sync(
            lambda: "Product created: Sprocket" in [m.value for m in transport.messages("product-topic")]
        )

    def test_create_rejects_invalid_body(self, client):
        response = client.post("/products", json={"name": "", "price": "-1", "category": "x"})
        assert response.status_code == 422

    def test_update_product(self, client, catalog_service):
        client.get("/products/1")
        reads_before = catalog_service.repository.read_count

        response = client.put("/products/1", json={"name": "B", "price": "20"})
        assert response.status_code == 200
        assert response.json() == {"id": 1, "name": "B", "price": "20", "category": "x"}

        reads_after_update = catalog_service.repository.read_count
        assert client.get("/products/1").json()["name"] == "B"
        assert catalog_service.repository.read_count == reads_after_update
        assert reads_after_update == reads_before + 1

    def test_update_missing_product_is_404(self, client):
        response = client.put("/products/999", json={"name": "B", "price": "20"})
        assert response.status_code == 404

    def test_delete_product(self, client):
        client.get("/products/2")

        response = client.delete("/products/2")
        assert response.status_code == 204
        assert client.get("/products/2").status_code == 404

    def test_clear_cache(self, client, catalog_service):
        client.get("/products/1")
        client.get("/products")

        response = client.delete("/products/cache")
        assert response.status_code == 200
        assert response.json() == "All caches cleared successfully."
        assert catalog_service.cache.keys() == []

    def test_manual_endpoints(self, client, catalog_service):
        assert client.get("/products/manual/3").json()["name"] == "Gadget"
        assert len(client.get("/products/manual").json()) == 3
        assert client.get("/products/manual/999").status_code == 404
        assert sorted(catalog_service.cache.keys()) == ["product::3", "product::all"]

    def test_failing_event_is_dead_lettered(self, client, catalog_service, transport, wait_until_sync):
        response = client.post("/events/product-topic", json={"payload": "order fail"})
        assert response.status_code == 202
        assert response.json() == {"topic": "product-topic", "accepted": True}

        assert wait_until_sync(lambda: len(transport.messages("product-topic.DLT")) == 1)
        assert catalog_service.consumer.get_stats()["product-topic"]["dead_lettered"] == 1
        assert "acknowledged" not in catalog_service.consumer.get_stats()["product-topic"]

    def test_publish_to_unknown_topic_is_rejected(self, client):
        response = client.post("/events/elsewhere", json={"payload": "x"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_metrics_endpoint(self, client):
        client.get("/products/1")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "cache_requests_total" in response.text


def test_startup_clears_stale_entries(seed_products):
    cache = InMemoryCacheBackend()
    service = CatalogService(
        repository=InMemoryProductRepository(seed_products),
        cache=cache,
        transport=InMemoryTransport()
    )
    # Entry left behind by a previous process against different data
    asyncio.run(cache.set("product::1", {"id": 1, "name": "Stale", "price": "1", "category": "x"}))

    with TestClient(service.app) as client:
        assert client.get("/products/1").json()["name"] == "A"


def test_create_app_uses_configured_backends():
    app = create_app()
    service = app.state.catalog_service
    assert isinstance(service.cache, InMemoryCacheBackend)
    assert isinstance(service.transport, InMemoryTransport)
    assert isinstance(service.repository, InMemoryProductRepository)
