"""
Integration tests for the catalog cache and change-event flow.
"""

from decimal import Decimal

import pytest

from service_catalog.app.main import CatalogService
from service_catalog.app.models import Product, ProductDTO, ProductUpdate
from service_catalog.app.messaging.memory import InMemoryTransport
from service_catalog.app.caching.backends import InMemoryCacheBackend
from service_catalog.app.persistence.memory import InMemoryProductRepository
from shared.config import get_config


def product_a() -> Product:
    return Product(name="A", price=Decimal("10"), category="x")


class TestCatalogFlow:
    """Full component wiring over in-memory backends."""

    @pytest.fixture
    async def service(self):
        service = CatalogService(
            get_config("catalog", 8020, consumer_max_attempts=3),
            repository=InMemoryProductRepository(),
            cache=InMemoryCacheBackend(),
            transport=InMemoryTransport()
        )
        await service.start()
        yield service
        await service.stop()

    @pytest.mark.asyncio
    async def test_seeded_example(self, service):
        repository = service.repository
        await repository.save(product_a())

        first = await service.coordinator.get_by_id(1)
        assert first == ProductDTO(id=1, name="A", price=Decimal("10"), category="x")
        assert repository.calls["find_by_id"] == 1

        updated = await service.coordinator.update(1, ProductUpdate(name="B", price=Decimal("20")))
        assert updated == ProductDTO(id=1, name="B", price=Decimal("20"), category="x")

        reads = repository.read_count
        assert await service.coordinator.get_by_id(1) == updated
        assert repository.read_count == reads

    @pytest.mark.asyncio
    async def test_every_mutation_emits_one_event(self, service):
        created = await service.coordinator.create(
            ProductDTO(name="Widget", price=Decimal("1"), category="tools")
        )
        await service.coordinator.update(created.id, ProductUpdate(name="Widget 2", price=Decimal("2")))
        await service.coordinator.delete(created.id)
        await service.transport.drain()

        assert [m.value for m in service.transport.messages("product-topic")] == [
            "Product created: Widget",
            "Product updated: Widget 2",
            f"Product deleted with ID: {created.id}",
        ]
        assert service.consumer.get_stats()["product-topic"] == {"acknowledged": 3}
        assert service.transport.messages("product-topic.DLT") == []

    @pytest.mark.asyncio
    async def test_poison_message_is_dead_lettered(self, service):
        await service.publisher.publish("deliberate fail")
        await service.transport.drain()

        dead = service.transport.messages("product-topic.DLT")
        assert [m.value for m in dead] == ["deliberate fail"]
        assert dead[0].headers["x-attempts"] == "3"
        assert service.consumer.get_stats()["product-topic"] == {"dead_lettered": 1}

    @pytest.mark.asyncio
    async def test_create_via_declarative_invalidates_manual_collection(self, service):
        await service.repository.save(product_a())
        assert len(await service.manual_cache.get_all()) == 1

        await service.coordinator.create(ProductDTO(name="C", price=Decimal("3"), category="y"))

        assert [p.name for p in await service.manual_cache.get_all()] == ["A", "C"]
        assert service.repository.calls["find_all"] == 2

    @pytest.mark.asyncio
    async def test_restart_clears_cache(self, service):
        await service.repository.save(product_a())
        await service.coordinator.get_by_id(1)
        await service.coordinator.get_all()
        assert service.cache.keys()

        await service.stop()
        await service.start()

        assert service.cache.keys() == []
