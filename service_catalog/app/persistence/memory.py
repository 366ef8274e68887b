"""
In-memory record store for local runs and tests.
"""

import asyncio
from collections import Counter
from dataclasses import replace
from typing import Dict, List, Optional

from shared.logging import get_logger
from ..models import Product
from .base import ProductRepository


class InMemoryProductRepository(ProductRepository):
    """Dictionary-backed repository with sequential identity assignment.

    ``calls`` counts invocations per operation so callers can observe
    whether a read reached the store.
    """

    def __init__(self, seed: Optional[List[Product]] = None):
        self.logger = get_logger("catalog.persistence.memory")
        self._records: Dict[int, Product] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()
        self.calls: Counter = Counter()

        for product in seed or []:
            self._insert(product)

    def _insert(self, product: Product) -> Product:
        if product.id is None:
            product = replace(product, id=self._next_id)
        self._records[product.id] = replace(product)
        self._next_id = max(self._next_id, product.id + 1)
        return replace(product)

    async def find_by_id(self, product_id: int) -> Optional[Product]:
        self.calls["find_by_id"] += 1
        record = self._records.get(product_id)
        return replace(record) if record else None

    async def find_all(self) -> List[Product]:
        self.calls["find_all"] += 1
        return [replace(record) for record in self._records.values()]

    async def save(self, product: Product) -> Product:
        self.calls["save"] += 1
        async with self._lock:
            saved = self._insert(product)
        self.logger.debug("Record saved", product_id=saved.id)
        return saved

    async def delete_by_id(self, product_id: int) -> None:
        self.calls["delete_by_id"] += 1
        async with self._lock:
            self._records.pop(product_id, None)

    @property
    def read_count(self) -> int:
        """Total reads that reached the store."""
        return self.calls["find_by_id"] + self.calls["find_all"]
