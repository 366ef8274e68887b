"""
Shared pytest fixtures for the product catalog service.
"""

import asyncio
import time
from decimal import Decimal

import pytest

from service_catalog.app.caching.backends import InMemoryCacheBackend
from service_catalog.app.messaging.memory import InMemoryTransport
from service_catalog.app.models import Product
from service_catalog.app.persistence.memory import InMemoryProductRepository


@pytest.fixture
def seed_products():
    """Products without ids, in insertion order."""
    return [
        Product(name="A", price=Decimal("10"), category="x"),
        Product(name="Widget", price=Decimal("24.99"), category="tools"),
        Product(name="Gadget", price=Decimal("5.50"), category="toys"),
    ]


@pytest.fixture
def repository(seed_products):
    """Seeded in-memory record store (ids 1..3)."""
    return InMemoryProductRepository(seed_products)


@pytest.fixture
def cache():
    return InMemoryCacheBackend()


@pytest.fixture
async def transport():
    transport = InMemoryTransport(redelivery_delay=0)
    await transport.start()
    yield transport
    await transport.stop()


@pytest.fixture
def wait_until():
    """Poll a predicate on the running loop until it holds or the timeout passes."""

    async def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()

    return _wait_until


@pytest.fixture
def wait_until_sync():
    """Blocking variant of ``wait_until`` for TestClient-based tests."""

    def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait_until
