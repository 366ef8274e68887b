"""
Unit tests for shared configuration, errors and retry helpers.
"""

from unittest.mock import AsyncMock

import pytest

from shared.config import get_config
from shared.errors import NotFoundError, StoreTimeoutError
from shared.logging import clear_context, set_request_id
from shared.retry import RetryConfig, RetryError, _calculate_delay, retry_on_exception


class TestConfig:
    """Test cases for service configuration."""

    def test_defaults(self):
        config = get_config("catalog", 8020)
        assert config.cache_namespace == "product"
        assert config.product_topic == "product-topic"
        assert config.evict_collection_on_delete is False
        assert config.consumer_max_attempts >= 1

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CATALOG_EVICT_COLLECTION_ON_DELETE", "true")
        monkeypatch.setenv("CATALOG_STORE_TIMEOUT_SECONDS", "0.5")

        config = get_config("catalog", 8020)

        assert config.evict_collection_on_delete is True
        assert config.store_timeout_seconds == 0.5


class TestErrors:
    """Test cases for error responses."""

    def test_response_carries_request_id(self):
        set_request_id("req-1")
        try:
            response = NotFoundError("Product 9 not found", {"product_id": 9}).to_response()
        finally:
            clear_context()

        assert response.request_id == "req-1"
        assert response.code == "NOT_FOUND"
        assert response.details == {"product_id": 9}

    def test_store_timeout_details(self):
        error = StoreTimeoutError("find_all", 0.25)
        assert error.code == "STORE_TIMEOUT"
        assert error.status_code == 504
        assert error.details == {"operation": "find_all", "timeout_seconds": 0.25}


class TestRetry:
    """Test cases for retry_on_exception."""

    @pytest.mark.asyncio
    async def test_exhaustion_raises_retry_error(self):
        func = AsyncMock(side_effect=ValueError("nope"))
        func.__name__ = "func"
        retries = []

        wrapped = retry_on_exception(
            config=RetryConfig(max_attempts=3, base_delay=0, jitter=False),
            on_retry=lambda attempt, error: retries.append(attempt)
        )(func)

        with pytest.raises(RetryError) as exc_info:
            await wrapped()

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_exception, ValueError)
        assert retries == [1, 2]
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_unlisted_exception_is_not_retried(self):
        func = AsyncMock(side_effect=KeyError("k"))
        func.__name__ = "func"

        wrapped = retry_on_exception(
            exceptions=(ValueError,),
            config=RetryConfig(max_attempts=3, base_delay=0, jitter=False)
        )(func)

        with pytest.raises(KeyError):
            await wrapped()
        assert func.await_count == 1

    def test_delay_strategies(self):
        assert _calculate_delay(3, RetryConfig(base_delay=1, jitter=False)) == 4
        assert _calculate_delay(3, RetryConfig(base_delay=1, jitter=False, backoff_strategy="linear")) == 3
        assert _calculate_delay(3, RetryConfig(base_delay=1, jitter=False, backoff_strategy="fixed")) == 1
        assert _calculate_delay(10, RetryConfig(base_delay=1, max_delay=5, jitter=False)) == 5

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)
