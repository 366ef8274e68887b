"""
Policy-driven cache coordination for Catalog Service.

Each operation states its cache policy inline:

================  =====================================================
get_by_id         read-through on ``product::<id>``; absent ids never cached
get_all           read-through on ``product::all``
create            evict ``product::all``
update            replace ``product::<id>``, evict ``product::all``
delete            evict ``product::<id>`` (``product::all`` only if enabled)
clear_all         drop the whole namespace
================  =====================================================

Mutations publish a change event after the store write and the cache
step, and before returning.
"""

from typing import TYPE_CHECKING, List, Optional

from shared.logging import get_logger
from shared.errors import CacheConversionError
from ..messaging.publisher import ChangeEventPublisher
from ..models import ProductDTO, ProductUpdate, dump_dto, dump_dto_list, load_dto, load_dto_list
from ..services.product_service import ProductService
from .backends import CacheBackend
from .keys import DEFAULT_NAMESPACE, collection_key, item_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class DeclarativeCacheCoordinator:
    """Wraps ProductService so that business code never touches the cache."""

    STRATEGY = "declarative"

    def __init__(
        self,
        service: ProductService,
        cache: CacheBackend,
        publisher: ChangeEventPublisher,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        evict_collection_on_delete: bool = False,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.service = service
        self.cache = cache
        self.publisher = publisher
        self.namespace = namespace
        self.evict_collection_on_delete = evict_collection_on_delete
        self.metrics = metrics
        self.logger = get_logger("catalog.cache.declarative")

    async def initialize(self):
        """Drop entries left by a previous process. Call once before serving."""
        removed = await self.clear_all()
        self.logger.info("Cleared cache on startup", namespace=self.namespace, keys_count=removed)

    async def get_by_id(self, product_id: int) -> Optional[ProductDTO]:
        key = item_key(product_id, self.namespace)

        cached = await self._read(key, load_dto)
        if cached is not None:
            return cached

        dto = await self.service.get_by_id(product_id)
        if dto is not None:
            await self.cache.set(key, dump_dto(dto))
        return dto

    async def get_all(self) -> List[ProductDTO]:
        key = collection_key(self.namespace)

        cached = await self._read(key, load_dto_list)
        if cached is not None:
            return cached

        products = await self.service.get_all()
        await self.cache.set(key, dump_dto_list(products))
        return products

    async def create(self, dto: ProductDTO) -> ProductDTO:
        created = await self.service.create(dto)

        await self._evict(collection_key(self.namespace), scope="collection")
        await self.publisher.product_created(created)
        return created

    async def update(self, product_id: int, changes: ProductUpdate) -> Optional[ProductDTO]:
        key = item_key(product_id, self.namespace)
        updated = await self.service.update(product_id, changes)

        if updated is None:
            # A stale entry for an unknown id must not survive as a false hit
            await self._evict(key, scope="item")
            return None

        await self.cache.set(key, dump_dto(updated))
        await self._evict(collection_key(self.namespace), scope="collection")
        await self.publisher.product_updated(updated)
        return updated

    async def delete(self, product_id: int) -> None:
        await self.service.delete(product_id)

        await self._evict(item_key(product_id, self.namespace), scope="item")
        if self.evict_collection_on_delete:
            await self._evict(collection_key(self.namespace), scope="collection")
        await self.publisher.product_deleted(product_id)

    async def clear_all(self) -> int:
        removed = await self.cache.clear_namespace(self.namespace)
        if self.metrics:
            self.metrics.record_cache_eviction(self.STRATEGY, "namespace")
        self.logger.info("Cache namespace cleared", namespace=self.namespace, keys_count=removed)
        return removed

    async def _read(self, key: str, convert):
        cached = await self.cache.get(key)
        if cached is None:
            self._record(hit=False)
            return None

        try:
            value = convert(key, cached)
        except CacheConversionError as e:
            self.logger.warning("Unreadable cache entry, treating as miss", key=key, error=e.message)
            self._record(hit=False)
            return None

        self.logger.debug("Cache hit", key=key)
        self._record(hit=True)
        return value

    async def _evict(self, key: str, scope: str):
        await self.cache.delete(key)
        if self.metrics:
            self.metrics.record_cache_eviction(self.STRATEGY, scope)
        self.logger.debug("Cache entry evicted", key=key, scope=scope)

    def _record(self, hit: bool):
        if self.metrics:
            self.metrics.record_cache_lookup(self.STRATEGY, hit)
