"""
Change event publisher for Catalog Service.
"""

from typing import TYPE_CHECKING, Optional

from shared.logging import get_logger
from ..models import ProductDTO
from .transport import MessageTransport

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class ChangeEventPublisher:
    """Announces product mutations on a channel.

    Publishing is fire-and-forget: the caller learns only whether the
    transport accepted the message, and a refusal is logged rather than
    raised so it never fails the originating mutation.
    """

    def __init__(
        self,
        transport: MessageTransport,
        topic: str,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.transport = transport
        self.topic = topic
        self.metrics = metrics
        self.logger = get_logger("catalog.messaging.publisher")

    async def publish(self, payload: str, topic: Optional[str] = None) -> bool:
        """Send ``payload`` to ``topic`` (default: the product topic)."""
        topic = topic or self.topic
        try:
            await self.transport.publish(topic, payload)
        except Exception as e:
            self.logger.error("Failed to publish change event", topic=topic, payload=payload, error=str(e))
            if self.metrics:
                self.metrics.record_change_event(topic, "publish_failed")
            return False

        self.logger.info("Change event published", topic=topic, payload=payload)
        if self.metrics:
            self.metrics.record_change_event(topic, "published")
        return True

    async def product_created(self, product: ProductDTO) -> bool:
        return await self.publish(f"Product created: {product.name}")

    async def product_updated(self, product: ProductDTO) -> bool:
        return await self.publish(f"Product updated: {product.name}")

    async def product_deleted(self, product_id: int) -> bool:
        return await self.publish(f"Product deleted with ID: {product_id}")
