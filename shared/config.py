"""
Shared configuration management for the product catalog service.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/catalog")
    kafka_bootstrap: str = Field(default="localhost:9092")

    # Backend selection
    cache_backend: str = Field(default="memory", description="redis | memory")
    store_backend: str = Field(default="memory", description="postgres | memory")
    message_transport: str = Field(default="memory", description="kafka | memory")

    # Caching
    cache_namespace: str = Field(default="product")
    evict_collection_on_delete: bool = Field(default=False)

    # Record store
    store_latency_seconds: float = Field(default=0.0, ge=0.0)
    store_timeout_seconds: float = Field(default=5.0, gt=0.0)

    # Change events
    product_topic: str = Field(default="product-topic")
    demo_topic: str = Field(default="demo-topic")
    consumer_group: str = Field(default="product-group")
    consumer_max_attempts: int = Field(default=3, ge=1)
    consumer_backoff_seconds: float = Field(default=0.0, ge=0.0)
    failure_marker: str = Field(default="fail")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
