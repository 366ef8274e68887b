"""
Record store interface for Catalog Service.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Product


class ProductRepository(ABC):
    """Durable persistence for product records. Owns identity assignment.

    Implementations return copies; callers never hold references into
    the store's own state.
    """

    async def start(self):
        """Open connections. No-op by default."""

    async def stop(self):
        """Release connections. No-op by default."""

    @abstractmethod
    async def find_by_id(self, product_id: int) -> Optional[Product]:
        """Return the record for ``product_id`` or None."""

    @abstractmethod
    async def find_all(self) -> List[Product]:
        """Return all records in store iteration order."""

    @abstractmethod
    async def save(self, product: Product) -> Product:
        """Insert (``id`` is None) or update a record and return the stored copy."""

    @abstractmethod
    async def delete_by_id(self, product_id: int) -> None:
        """Delete a record. Deleting an absent id is not an error."""

    async def health_check(self) -> bool:
        return True
