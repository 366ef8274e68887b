"""
Change event handlers for Catalog Service.
"""

from shared.logging import get_logger
from shared.errors import ProcessingError
from .transport import ChannelMessage

logger = get_logger("catalog.messaging.handlers")


def make_product_event_handler(failure_marker: str = "fail"):
    """Build the product-topic handler.

    Any payload containing ``failure_marker`` raises ``ProcessingError``;
    this is how the dead-letter path is exercised on purpose.
    """

    async def handle_product_event(message: ChannelMessage):
        logger.info("Received product event", topic=message.topic, offset=message.offset, payload=message.value)

        if failure_marker and failure_marker in message.value:
            raise ProcessingError(
                "Simulated processing failure",
                {"topic": message.topic, "offset": message.offset}
            )

    return handle_product_event


async def log_message(message: ChannelMessage):
    logger.info("Received message", topic=message.topic, payload=message.value)
