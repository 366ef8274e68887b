"""
Message channel transport interface for Catalog Service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

DEAD_LETTER_SUFFIX = ".DLT"


def dead_letter_topic(topic: str) -> str:
    """Dead-letter channel name for ``topic``."""
    return f"{topic}{DEAD_LETTER_SUFFIX}"


@dataclass
class ChannelMessage:
    """Message wrapper handed to subscribers."""
    topic: str
    partition: int
    offset: int
    value: str
    key: Optional[str] = None
    timestamp: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)


MessageHandler = Callable[[ChannelMessage], Awaitable[None]]


class MessageTransport(ABC):
    """Publish/subscribe transport for textual messages.

    ``publish`` hands a message to the transport and returns without
    waiting for delivery. It raises ``PublishError`` when the transport
    refuses the message outright.
    """

    def __init__(self):
        self.subscribed_topics: List[str] = []
        self.message_handlers: Dict[str, MessageHandler] = {}
        self.running = False

    @abstractmethod
    async def start(self):
        """Start the transport."""

    @abstractmethod
    async def stop(self):
        """Stop the transport."""

    @abstractmethod
    async def publish(
        self,
        topic: str,
        value: str,
        key: Optional[str] = None,
        partition: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> None:
        """Hand a message to the transport."""

    @abstractmethod
    async def subscribe(self, topic: str, handler: MessageHandler):
        """Deliver messages from ``topic`` to ``handler`` one at a time."""

    def get_subscribed_topics(self) -> List[str]:
        """Get list of subscribed topics."""
        return self.subscribed_topics.copy()

    def is_running(self) -> bool:
        """Check if transport is running."""
        return self.running
