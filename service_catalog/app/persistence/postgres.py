"""
PostgreSQL record store for Catalog Service.
"""

from typing import List, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import StoreError
from ..models import Product
from .base import ProductRepository


class PostgresProductRepository(ProductRepository):
    """PostgreSQL persistence layer for products."""

    def __init__(self, dsn: str, command_timeout: float = 30):
        self.dsn = dsn
        self.command_timeout = command_timeout
        self.logger = get_logger("catalog.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=self.command_timeout
            )

            await self._create_tables()

            self.logger.info("PostgreSQL persistence started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise StoreError(f"Failed to start PostgreSQL persistence: {e}")

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS products (
                    id BIGSERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL,
                    price NUMERIC(19, 2) NOT NULL,
                    category VARCHAR(255) NOT NULL
                );
            """)

    @staticmethod
    def _row_to_product(row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            price=row["price"],
            category=row["category"]
        )

    async def find_by_id(self, product_id: int) -> Optional[Product]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, name, price, category FROM products WHERE id = $1",
                product_id
            )
        return self._row_to_product(row) if row else None

    async def find_all(self) -> List[Product]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT id, name, price, category FROM products ORDER BY id")
        return [self._row_to_product(row) for row in rows]

    async def save(self, product: Product) -> Product:
        async with self.pool.acquire() as conn:
            if product.id is None:
                row = await conn.fetchrow("""
                    INSERT INTO products (name, price, category)
                    VALUES ($1, $2, $3)
                    RETURNING id, name, price, category
                """, product.name, product.price, product.category)
            else:
                row = await conn.fetchrow("""
                    INSERT INTO products (id, name, price, category)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (id) DO UPDATE SET
                        name = EXCLUDED.name,
                        price = EXCLUDED.price,
                        category = EXCLUDED.category
                    RETURNING id, name, price, category
                """, product.id, product.name, product.price, product.category)

        saved = self._row_to_product(row)
        self.logger.info("Product saved", product_id=saved.id, name=saved.name)
        return saved

    async def delete_by_id(self, product_id: int) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM products WHERE id = $1", product_id)
        self.logger.info("Product deleted", product_id=product_id)

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False
