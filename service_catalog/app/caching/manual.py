"""
Hand-written cache-aside reads for Catalog Service.
"""

from typing import TYPE_CHECKING, List, Optional

from shared.logging import get_logger
from shared.errors import CacheConversionError
from ..models import ProductDTO, dump_dto, dump_dto_list, load_dto, load_dto_list
from ..services.product_service import ProductService
from .backends import CacheBackend
from .keys import DEFAULT_NAMESPACE, collection_key, item_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class ManualCacheStore:
    """Cache-aside reads through direct get/set calls.

    Nothing here evicts entries. The only invalidation this path sees
    is the collection delete ``ProductService.create`` issues against the
    underlying cache, plus whatever the declarative coordinator does when
    both share a backend.
    """

    STRATEGY = "manual"

    def __init__(
        self,
        service: ProductService,
        cache: CacheBackend,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.service = service
        self.cache = cache
        self.namespace = namespace
        self.metrics = metrics
        self.logger = get_logger("catalog.cache.manual")

    def _record(self, hit: bool):
        if self.metrics:
            self.metrics.record_cache_lookup(self.STRATEGY, hit)

    async def get_by_id(self, product_id: int) -> Optional[ProductDTO]:
        key = item_key(product_id, self.namespace)

        cached = await self.cache.get(key)
        if cached is not None:
            try:
                dto = load_dto(key, cached)
            except CacheConversionError as e:
                self.logger.warning("Unreadable cache entry, treating as miss", key=key, error=e.message)
            else:
                self.logger.debug("Fetched from cache", key=key)
                self._record(hit=True)
                return dto

        self._record(hit=False)
        dto = await self.service.get_by_id(product_id)
        if dto is not None:
            await self.cache.set(key, dump_dto(dto))
            self.logger.debug("Fetched from store and cached", key=key)
        return dto

    async def get_all(self) -> List[ProductDTO]:
        key = collection_key(self.namespace)

        cached = await self.cache.get(key)
        if cached is not None:
            try:
                products = load_dto_list(key, cached)
            except CacheConversionError as e:
                self.logger.warning("Unreadable cache entry, treating as miss", key=key, error=e.message)
            else:
                self.logger.debug("Fetched all products from cache", key=key, count=len(products))
                self._record(hit=True)
                return products

        self._record(hit=False)
        products = await self.service.get_all()
        await self.cache.set(key, dump_dto_list(products))
        self.logger.debug("Cached all products", key=key, count=len(products))
        return products
