"""
Shared error handling for the product catalog service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CatalogException(Exception):
    """Base exception for catalog services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(CatalogException):
    """Requested record does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ValidationError(CatalogException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class StoreError(CatalogException):
    """Record store failures."""

    status_code = 503

    def __init__(self, message: str = "Record store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)


class StoreTimeoutError(StoreError):
    """Record store call exceeded its time budget."""

    status_code = 504

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Record store call '{operation}' timed out after {timeout}s",
            {"operation": operation, "timeout_seconds": timeout}
        )
        self.code = "STORE_TIMEOUT"


class CacheConversionError(CatalogException):
    """A cached value could not be converted back to its expected type."""

    def __init__(self, key: str, message: str = "Cached value conversion failed"):
        super().__init__("CACHE_CONVERSION_ERROR", message, {"key": key})


class PublishError(CatalogException):
    """The message transport rejected a message."""

    status_code = 502

    def __init__(self, topic: str, message: str = "Publish failed"):
        super().__init__("PUBLISH_ERROR", message, {"topic": topic})


class ProcessingError(CatalogException):
    """A consumer handler failed to process a message."""

    def __init__(self, message: str = "Message processing failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("PROCESSING_ERROR", message, details)
