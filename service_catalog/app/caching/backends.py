"""
Cache transport backends for Catalog Service.

Values are stored as JSON text, so whatever comes back from ``get`` is
a generic representation (dicts, lists, strings) and callers convert it
to concrete types themselves.
"""

import asyncio
import fnmatch
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis.asyncio as redis

from shared.logging import get_logger
from shared.errors import StoreError
from .keys import namespace_pattern


class CacheBackend(ABC):
    """Key/value cache transport.

    Failures are logged and reported as a miss (``get``) or ``False``
    (writes); they never propagate to callers.
    """

    async def start(self):
        """Open connections. No-op by default."""

    async def stop(self):
        """Release connections. No-op by default."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value stored at ``key`` or None."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """Store ``value`` at ``key`` without expiry."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True when something was removed."""

    @abstractmethod
    async def clear_namespace(self, namespace: str) -> int:
        """Remove every key in ``namespace``. Returns the number removed."""

    async def health_check(self) -> bool:
        return True


class RedisCacheBackend(CacheBackend):
    """Redis cache transport."""

    def __init__(self, redis_url: str, scan_batch_size: int = 500):
        self.redis_url = redis_url
        self.scan_batch_size = scan_batch_size
        self.logger = get_logger("catalog.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis cache."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except Exception as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise StoreError(f"Failed to start Redis cache: {e}", {"backend": "redis"})

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    async def get(self, key: str) -> Optional[Any]:
        try:
            cached_data = await self.redis.get(key)
            if cached_data is None:
                return None
            return json.loads(cached_data)
        except Exception as e:
            self.logger.error("Cache get error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any) -> bool:
        try:
            await self.redis.set(key, json.dumps(value))
            return True
        except Exception as e:
            self.logger.error("Cache set error", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.redis.delete(key))
        except Exception as e:
            self.logger.error("Cache delete error", key=key, error=str(e))
            return False

    async def clear_namespace(self, namespace: str) -> int:
        pattern = namespace_pattern(namespace)
        removed = 0
        try:
            batch = []
            async for key in self.redis.scan_iter(match=pattern, count=self.scan_batch_size):
                batch.append(key)
                if len(batch) >= self.scan_batch_size:
                    removed += await self.redis.delete(*batch)
                    batch = []
            if batch:
                removed += await self.redis.delete(*batch)

            self.logger.info("Cleared cache namespace", namespace=namespace, keys_count=removed)
            return removed

        except Exception as e:
            self.logger.error("Cache clear error", namespace=namespace, error=str(e))
            return removed

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False


class InMemoryCacheBackend(CacheBackend):
    """Process-local cache transport with the same JSON round trip as Redis."""

    def __init__(self):
        self.logger = get_logger("catalog.cache.memory")
        self._data: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        cached_data = self._data.get(key)
        if cached_data is None:
            return None
        return json.loads(cached_data)

    async def set(self, key: str, value: Any) -> bool:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            self.logger.error("Cache set error", key=key, error=str(e))
            return False
        # Single assignment keeps replacement atomic per key
        self._data[key] = encoded
        return True

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def clear_namespace(self, namespace: str) -> int:
        pattern = namespace_pattern(namespace)
        async with self._lock:
            keys = [key for key in self._data if fnmatch.fnmatchcase(key, pattern)]
            for key in keys:
                del self._data[key]
        self.logger.info("Cleared cache namespace", namespace=namespace, keys_count=len(keys))
        return len(keys)

    def keys(self):
        """Snapshot of stored keys."""
        return list(self._data)
