"""
Product business logic for Catalog Service.
"""

import asyncio
import functools
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from shared.logging import get_logger
from shared.errors import StoreError, StoreTimeoutError
from ..caching.backends import CacheBackend
from ..caching.keys import DEFAULT_NAMESPACE, collection_key
from ..models import ProductDTO, ProductUpdate, to_dto, to_entity
from ..persistence.base import ProductRepository

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class ProductService:
    """Record store access for products.

    Every store call pays ``latency`` seconds and is cut off after
    ``timeout`` seconds. Repositories exposing plain (blocking)
    callables are run in the default executor.
    """

    def __init__(
        self,
        repository: ProductRepository,
        cache: CacheBackend,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        latency: float = 0.0,
        timeout: float = 5.0,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.repository = repository
        self.cache = cache
        self.namespace = namespace
        self.latency = latency
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("catalog.services.product")

    async def _call_store(self, operation: str, func: Callable, *args) -> Any:
        async def invoke():
            if self.latency:
                await asyncio.sleep(self.latency)
            if asyncio.iscoroutinefunction(func):
                return await func(*args)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, functools.partial(func, *args))

        try:
            if self.metrics:
                with self.metrics.time_operation("store_call_duration_seconds", operation=operation):
                    return await asyncio.wait_for(invoke(), self.timeout)
            return await asyncio.wait_for(invoke(), self.timeout)
        except asyncio.TimeoutError:
            self.logger.error("Record store call timed out", operation=operation, timeout=self.timeout)
            raise StoreTimeoutError(operation, self.timeout)
        except StoreError:
            raise
        except Exception as e:
            self.logger.error("Record store call failed", operation=operation, error=str(e))
            raise StoreError(str(e), {"operation": operation}) from e

    async def get_by_id(self, product_id: int) -> Optional[ProductDTO]:
        product = await self._call_store("find_by_id", self.repository.find_by_id, product_id)
        return to_dto(product) if product else None

    async def get_all(self) -> List[ProductDTO]:
        products = await self._call_store("find_all", self.repository.find_all)
        return [to_dto(product) for product in products]

    async def create(self, dto: ProductDTO) -> ProductDTO:
        """Persist a new product.

        The collection key is deleted straight from the underlying cache
        on every create, whichever caching strategy the caller uses.
        """
        entity = to_entity(dto)
        entity.id = None
        saved = await self._call_store("save", self.repository.save, entity)

        await self.cache.delete(collection_key(self.namespace))
        self.logger.info("Product created", product_id=saved.id, name=saved.name)
        return to_dto(saved)

    async def update(self, product_id: int, changes: ProductUpdate) -> Optional[ProductDTO]:
        """Apply name and price changes. Returns None when the id is unknown."""
        existing = await self._call_store("find_by_id", self.repository.find_by_id, product_id)
        if existing is None:
            return None

        existing.name = changes.name
        existing.price = changes.price
        updated = await self._call_store("save", self.repository.save, existing)
        self.logger.info("Product updated", product_id=updated.id, name=updated.name)
        return to_dto(updated)

    async def delete(self, product_id: int) -> None:
        await self._call_store("delete_by_id", self.repository.delete_by_id, product_id)
        self.logger.info("Product deleted", product_id=product_id)
