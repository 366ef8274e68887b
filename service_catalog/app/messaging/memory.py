"""
In-process message transport for local runs and tests.
"""

import asyncio
import time
from collections import defaultdict
from typing import Dict, List, Optional

from shared.logging import get_logger
from shared.errors import PublishError
from .transport import ChannelMessage, MessageHandler, MessageTransport


class InMemoryTransport(MessageTransport):
    """Single-partition topics backed by asyncio queues.

    Every published message is appended to the topic log. Only topics
    with a live subscriber get delivery; there is no replay for
    subscribers that arrive later. A message whose handler raises is
    redelivered until it is handled, holding back the rest of its topic.
    """

    def __init__(self, redelivery_delay: float = 0.5):
        super().__init__()
        self.redelivery_delay = redelivery_delay
        self.logger = get_logger("catalog.messaging.memory")
        self._log: Dict[str, List[ChannelMessage]] = defaultdict(list)
        self._queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    async def start(self):
        self.running = True
        self.logger.info("In-memory transport started")

    async def stop(self):
        self.running = False
        for task in self._workers.values():
            task.cancel()
        for task in self._workers.values():
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._workers.clear()
        self._queues.clear()
        self.subscribed_topics.clear()
        self.message_handlers.clear()
        self.logger.info("In-memory transport stopped")

    async def publish(
        self,
        topic: str,
        value: str,
        key: Optional[str] = None,
        partition: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> None:
        if not self.running:
            raise PublishError(topic, "Transport not started")

        log = self._log[topic]
        message = ChannelMessage(
            topic=topic,
            partition=partition or 0,
            offset=len(log),
            value=value,
            key=key,
            timestamp=int(time.time() * 1000),
            headers=dict(headers or {})
        )
        log.append(message)

        queue = self._queues.get(topic)
        if queue is not None:
            queue.put_nowait(message)

        self.logger.debug("Message published", topic=topic, offset=message.offset)

    async def subscribe(self, topic: str, handler: MessageHandler):
        if topic in self.subscribed_topics:
            self.logger.warning("Already subscribed to topic", topic=topic)
            return

        self.subscribed_topics.append(topic)
        self.message_handlers[topic] = handler
        self._queues[topic] = asyncio.Queue()
        self._workers[topic] = asyncio.create_task(self._consume(topic))
        self.logger.info("Subscribed to topic", topic=topic)

    async def _consume(self, topic: str):
        queue = self._queues[topic]
        handler = self.message_handlers[topic]
        while True:
            message = await queue.get()
            try:
                await self._deliver(handler, message)
            finally:
                queue.task_done()

    async def _deliver(self, handler: MessageHandler, message: ChannelMessage):
        attempt = 1
        while True:
            try:
                await handler(message)
                return
            except Exception as e:
                self.logger.error(
                    "Error processing message, redelivering",
                    topic=message.topic,
                    offset=message.offset,
                    delivery=attempt,
                    error=str(e)
                )
            attempt += 1
            await asyncio.sleep(self.redelivery_delay)

    async def drain(self):
        """Wait until every delivered message has been handled."""
        # Handlers may publish further messages, so loop until quiet
        while True:
            published = self._published_count()
            for queue in list(self._queues.values()):
                await queue.join()
            if self._published_count() == published:
                return

    def _published_count(self) -> int:
        return sum(len(log) for log in self._log.values())

    def messages(self, topic: str) -> List[ChannelMessage]:
        """All messages ever published to ``topic``."""
        return list(self._log.get(topic, []))
