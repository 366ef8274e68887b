"""
Unit tests for ProductService.
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from service_catalog.app.models import Product, ProductDTO, ProductUpdate
from service_catalog.app.services.product_service import ProductService
from shared.errors import StoreError, StoreTimeoutError
from shared.metrics import MetricsCollector


class TestProductService:
    """Test cases for ProductService."""

    @pytest.fixture
    def service(self, repository, cache):
        return ProductService(repository, cache)

    @pytest.mark.asyncio
    async def test_get_by_id_maps_to_dto(self, service):
        dto = await service.get_by_id(1)

        assert dto == ProductDTO(id=1, name="A", price=Decimal("10"), category="x")

    @pytest.mark.asyncio
    async def test_get_by_id_absent_returns_none(self, service):
        assert await service.get_by_id(99) is None

    @pytest.mark.asyncio
    async def test_get_all_follows_store_order(self, service):
        products = await service.get_all()

        assert [p.id for p in products] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_create_ignores_client_id_and_assigns_identity(self, service):
        created = await service.create(
            ProductDTO(id=1, name="New", price=Decimal("1"), category="z")
        )

        assert created.id == 4
        assert (await service.get_by_id(1)).name == "A"

    @pytest.mark.asyncio
    async def test_create_deletes_collection_key_from_underlying_cache(self, service, cache):
        await cache.set("product::all", [])
        await cache.set("product::1", {"id": 1})

        await service.create(ProductDTO(name="New", price=Decimal("1"), category="z"))

        assert await cache.get("product::all") is None
        assert await cache.get("product::1") == {"id": 1}

    @pytest.mark.asyncio
    async def test_update_changes_name_and_price_only(self, service):
        updated = await service.update(1, ProductUpdate(name="B", price=Decimal("20")))

        assert updated == ProductDTO(id=1, name="B", price=Decimal("20"), category="x")

    @pytest.mark.asyncio
    async def test_update_unknown_id_returns_none_without_saving(self, service, repository):
        assert await service.update(99, ProductUpdate(name="B", price=Decimal("20"))) is None
        assert repository.calls["save"] == 0

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, service):
        await service.delete(2)

        assert await service.get_by_id(2) is None

    @pytest.mark.asyncio
    async def test_slow_store_call_times_out(self, cache):
        repository = MagicMock()

        async def slow_find(product_id):
            await asyncio.sleep(1)

        repository.find_by_id = slow_find
        service = ProductService(repository, cache, timeout=0.05)

        with pytest.raises(StoreTimeoutError) as exc_info:
            await service.get_by_id(1)

        assert exc_info.value.code == "STORE_TIMEOUT"
        assert exc_info.value.details["operation"] == "find_by_id"

    @pytest.mark.asyncio
    async def test_synthetic_latency_counts_against_timeout(self, repository, cache):
        service = ProductService(repository, cache, latency=0.2, timeout=0.05)

        with pytest.raises(StoreTimeoutError):
            await service.get_all()

    @pytest.mark.asyncio
    async def test_store_failure_is_wrapped(self, cache):
        repository = MagicMock()
        repository.find_all = AsyncMock(side_effect=RuntimeError("connection reset"))
        service = ProductService(repository, cache)

        with pytest.raises(StoreError) as exc_info:
            await service.get_all()

        assert exc_info.value.code == "STORE_ERROR"

    @pytest.mark.asyncio
    async def test_blocking_repository_runs_in_executor(self, cache):
        repository = MagicMock()
        repository.find_by_id = MagicMock(
            return_value=Product(id=5, name="Sync", price=Decimal("1"), category="s")
        )
        service = ProductService(repository, cache)

        dto = await service.get_by_id(5)

        assert dto.name == "Sync"
        repository.find_by_id.assert_called_once_with(5)

    @pytest.mark.asyncio
    async def test_store_calls_are_timed(self, repository, cache):
        metrics = MetricsCollector("catalog-test")
        service = ProductService(repository, cache, metrics=metrics)

        await service.get_all()

        assert metrics.sample("store_call_duration_seconds_count", operation="find_all") == 1
