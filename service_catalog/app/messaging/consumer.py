"""
Change event consumer with bounded retry and dead-letter routing.
"""

import asyncio
from collections import Counter, defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Union, Awaitable

from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from .transport import ChannelMessage, MessageTransport, dead_letter_topic

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class MessageState(str, Enum):
    """Per-message processing states. ACKNOWLEDGED and DEAD_LETTERED are terminal."""
    RECEIVED = "received"
    PROCESSING = "processing"
    RETRYING = "retrying"
    ACKNOWLEDGED = "acknowledged"
    DEAD_LETTERED = "dead_lettered"


Handler = Callable[[ChannelMessage], Union[None, Awaitable[None]]]


class ChangeEventConsumer:
    """Runs a handler per channel and routes exhausted messages to ``<topic>.DLT``.

    A failing handler is retried ``retry_config.max_attempts`` times in
    total. The dead-letter copy keeps the original partition and carries
    the original topic, partition, offset and error as headers.
    """

    def __init__(
        self,
        transport: MessageTransport,
        retry_config: Optional[RetryConfig] = None,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.transport = transport
        self.retry_config = retry_config or RetryConfig(
            max_attempts=3, base_delay=0.0, jitter=False, backoff_strategy="fixed"
        )
        self.metrics = metrics
        self.logger = get_logger("catalog.messaging.consumer")
        self.stats: Dict[str, Counter] = defaultdict(Counter)

    async def subscribe(self, topic: str, handler: Handler):
        """Subscribe ``handler`` to ``topic`` behind the retry/dead-letter wrapper."""

        async def process(message: ChannelMessage):
            await self.process(message, handler)

        await self.transport.subscribe(topic, process)

    async def process(self, message: ChannelMessage, handler: Handler) -> MessageState:
        """Drive one message to a terminal state."""
        self._transition(message, MessageState.RECEIVED)

        def on_retry(attempt: int, error: Exception):
            self._transition(message, MessageState.RETRYING, attempt=attempt, error=str(error))

        @retry_on_exception(config=self.retry_config, on_retry=on_retry)
        async def attempt():
            self._transition(message, MessageState.PROCESSING)
            await self._invoke(handler, message)

        try:
            await attempt()
        except RetryError as e:
            await self._dead_letter(message, e.last_exception, e.attempts)
            return self._transition(message, MessageState.DEAD_LETTERED)

        return self._transition(message, MessageState.ACKNOWLEDGED)

    @staticmethod
    async def _invoke(handler: Handler, message: ChannelMessage):
        if asyncio.iscoroutinefunction(handler):
            await handler(message)
        else:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, handler, message)

    async def _dead_letter(self, message: ChannelMessage, error: Exception, attempts: int):
        target = dead_letter_topic(message.topic)
        headers = dict(message.headers)
        headers.update({
            "x-original-topic": message.topic,
            "x-original-partition": str(message.partition),
            "x-original-offset": str(message.offset),
            "x-exception-message": str(error),
            "x-attempts": str(attempts),
        })

        try:
            await self.transport.publish(
                target,
                message.value,
                key=message.key,
                partition=message.partition,
                headers=headers
            )
        except Exception as e:
            # Leave the message uncommitted so the transport redelivers it
            self.logger.error(
                "Dead-letter publish failed",
                topic=message.topic,
                dead_letter_topic=target,
                offset=message.offset,
                payload=message.value,
                error=str(e)
            )
            raise

        self.logger.warning(
            "Message dead-lettered",
            topic=message.topic,
            dead_letter_topic=target,
            partition=message.partition,
            offset=message.offset,
            attempts=attempts,
            error=str(error)
        )

    def _transition(self, message: ChannelMessage, state: MessageState, **details) -> MessageState:
        self.logger.debug(
            "Message state",
            topic=message.topic,
            offset=message.offset,
            state=state.value,
            **details
        )
        if state in (MessageState.ACKNOWLEDGED, MessageState.DEAD_LETTERED):
            self.stats[message.topic][state.value] += 1
            if self.metrics:
                self.metrics.record_change_event(message.topic, state.value)
        return state

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        """Terminal-state counts per topic."""
        return {topic: dict(counts) for topic, counts in self.stats.items()}
