"""
Record store implementations for Catalog Service.

The in-memory repository backs local runs and tests; the PostgreSQL
repository is used when ``store_backend`` is ``postgres``.
"""

from .base import ProductRepository
from .memory import InMemoryProductRepository
from .postgres import PostgresProductRepository

__all__ = ["ProductRepository", "InMemoryProductRepository", "PostgresProductRepository"]
