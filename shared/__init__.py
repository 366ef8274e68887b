"""
Shared utilities for the product catalog service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators used by message consumers
- base_service: FastAPI application scaffolding

Do not import from service_* packages into shared/.
"""
