"""
Messaging package for Catalog Service.

Product mutations are announced on a change-event channel. Consumers
retry failing messages a bounded number of times and then republish
them to the channel's ``.DLT`` dead-letter topic.
"""

from .transport import ChannelMessage, MessageTransport, dead_letter_topic
from .memory import InMemoryTransport
from .kafka_transport import KafkaTransport
from .publisher import ChangeEventPublisher
from .consumer import ChangeEventConsumer, MessageState

__all__ = [
    "ChannelMessage",
    "MessageTransport",
    "dead_letter_topic",
    "InMemoryTransport",
    "KafkaTransport",
    "ChangeEventPublisher",
    "ChangeEventConsumer",
    "MessageState",
]
