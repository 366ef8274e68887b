"""
Catalog service: products behind a cache with change notifications.
"""

from typing import Dict, List, Optional

from fastapi import Response
from pydantic import BaseModel, Field

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import NotFoundError, ValidationError
from shared.retry import RetryConfig

from .caching.backends import CacheBackend, InMemoryCacheBackend, RedisCacheBackend
from .caching.declarative import DeclarativeCacheCoordinator
from .caching.manual import ManualCacheStore
from .messaging.consumer import ChangeEventConsumer
from .messaging.handlers import log_message, make_product_event_handler
from .messaging.kafka_transport import KafkaTransport
from .messaging.memory import InMemoryTransport
from .messaging.publisher import ChangeEventPublisher
from .messaging.transport import MessageTransport
from .models import ProductDTO, ProductUpdate
from .persistence import InMemoryProductRepository, PostgresProductRepository, ProductRepository
from .services.product_service import ProductService


class EventPublishRequest(BaseModel):
    """Request model for publishing a raw change event."""
    payload: str = Field(..., min_length=1, description="Message text")


def build_cache_backend(config: ServiceConfig) -> CacheBackend:
    if config.cache_backend == "redis":
        return RedisCacheBackend(config.redis_url)
    if config.cache_backend == "memory":
        return InMemoryCacheBackend()
    raise ValidationError(f"Unknown cache backend: {config.cache_backend}")


def build_repository(config: ServiceConfig) -> ProductRepository:
    if config.store_backend == "postgres":
        return PostgresProductRepository(config.postgres_dsn)
    if config.store_backend == "memory":
        return InMemoryProductRepository()
    raise ValidationError(f"Unknown store backend: {config.store_backend}")


def build_transport(config: ServiceConfig) -> MessageTransport:
    if config.message_transport == "kafka":
        return KafkaTransport(config.kafka_bootstrap, config.consumer_group)
    if config.message_transport == "memory":
        return InMemoryTransport()
    raise ValidationError(f"Unknown message transport: {config.message_transport}")


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        repository: Optional[ProductRepository] = None,
        cache: Optional[CacheBackend] = None,
        transport: Optional[MessageTransport] = None
    ):
        super().__init__("catalog", 8020, config or get_config("catalog", 8020))

        self.repository = repository or build_repository(self.config)
        self.cache = cache or build_cache_backend(self.config)
        self.transport = transport or build_transport(self.config)

        self.publisher = ChangeEventPublisher(
            self.transport,
            self.config.product_topic,
            metrics=self.metrics
        )
        self.consumer = ChangeEventConsumer(
            self.transport,
            RetryConfig(
                max_attempts=self.config.consumer_max_attempts,
                base_delay=self.config.consumer_backoff_seconds,
                jitter=False,
                backoff_strategy="fixed"
            ),
            metrics=self.metrics
        )
        self.product_service = ProductService(
            self.repository,
            self.cache,
            namespace=self.config.cache_namespace,
            latency=self.config.store_latency_seconds,
            timeout=self.config.store_timeout_seconds,
            metrics=self.metrics
        )
        self.coordinator = DeclarativeCacheCoordinator(
            self.product_service,
            self.cache,
            self.publisher,
            namespace=self.config.cache_namespace,
            evict_collection_on_delete=self.config.evict_collection_on_delete,
            metrics=self.metrics
        )
        self.manual_cache = ManualCacheStore(
            self.product_service,
            self.cache,
            namespace=self.config.cache_namespace,
            metrics=self.metrics
        )

        self._setup_catalog_routes()
        self.app.state.catalog_service = self

    def _setup_catalog_routes(self):
        """Set up catalog-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "catalog",
                "message": "Product Catalog - Catalog Service",
                "version": "1.0.0",
                "capabilities": ["declarative_cache", "manual_cache", "change_events", "dead_letter"]
            }

        # Literal paths are registered before /products/{product_id}
        @self.app.delete("/products/cache")
        async def clear_cache():
            """Drop every entry in the product cache namespace."""
            await self.coordinator.clear_all()
            return "All caches cleared successfully."

        @self.app.get("/products/manual", response_model=List[ProductDTO])
        async def get_all_manually():
            return await self.manual_cache.get_all()

        @self.app.get("/products/manual/{product_id}", response_model=ProductDTO)
        async def get_manual(product_id: int):
            product = await self.manual_cache.get_by_id(product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
            return product

        @self.app.get("/products", response_model=List[ProductDTO])
        async def get_all():
            return await self.coordinator.get_all()

        @self.app.post("/products", response_model=ProductDTO, status_code=201)
        async def create_product(dto: ProductDTO):
            return await self.coordinator.create(dto)

        @self.app.get("/products/{product_id}", response_model=ProductDTO)
        async def get_product(product_id: int):
            product = await self.coordinator.get_by_id(product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
            return product

        @self.app.put("/products/{product_id}", response_model=ProductDTO)
        async def update_product(product_id: int, changes: ProductUpdate):
            product = await self.coordinator.update(product_id, changes)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
            return product

        @self.app.delete("/products/{product_id}", status_code=204)
        async def delete_product(product_id: int):
            await self.coordinator.delete(product_id)
            return Response(status_code=204)

        @self.app.post("/events/{topic}", status_code=202)
        async def publish_event(topic: str, request: EventPublishRequest):
            """Publish a raw payload to one of the service's channels."""
            if topic not in (self.config.product_topic, self.config.demo_topic):
                raise ValidationError(f"Unknown topic: {topic}", {"topic": topic})
            accepted = await self.publisher.publish(request.payload, topic=topic)
            return {"topic": topic, "accepted": accepted}

        @self.app.get("/events/stats")
        async def event_stats() -> Dict[str, Dict[str, int]]:
            return self.consumer.get_stats()

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check catalog service dependencies."""
        return {
            "cache": "ok" if await self.cache.health_check() else "error",
            "store": "ok" if await self.repository.health_check() else "error",
            "transport": "ok" if self.transport.is_running() else "error",
        }

    async def start(self):
        """Start catalog service components."""
        await self.cache.start()
        await self.repository.start()
        await self.transport.start()

        await self.consumer.subscribe(
            self.config.product_topic,
            make_product_event_handler(self.config.failure_marker)
        )
        await self.consumer.subscribe(self.config.demo_topic, log_message)

        await self.coordinator.initialize()
        self.logger.info("Catalog service components started")

    async def stop(self):
        """Stop catalog service components."""
        await self.transport.stop()
        await self.repository.stop()
        await self.cache.stop()

        self.logger.info("Catalog service components stopped")


def create_app():
    """Create catalog service application."""
    service = CatalogService()
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
