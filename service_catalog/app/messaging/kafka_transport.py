"""
Kafka message transport for Catalog Service.
"""

import asyncio
import functools
from typing import Dict, Optional

import kafka
from kafka.errors import KafkaError

from shared.logging import get_logger
from shared.errors import CatalogException, PublishError
from .transport import ChannelMessage, MessageHandler, MessageTransport


class KafkaTransport(MessageTransport):
    """String-valued Kafka producer and consumer behind one transport.

    Offsets are committed after each polled batch has been handled, so
    a crash mid-batch redelivers rather than drops. When a handler
    raises, its partition is rewound to the failed record, and the rest
    of that partition waits until the record is handled.
    """

    def __init__(self, bootstrap_servers: str, group_id: str, redelivery_delay: float = 1.0):
        super().__init__()
        self.redelivery_delay = redelivery_delay
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.logger = get_logger("catalog.messaging.kafka")
        self.producer: Optional[kafka.KafkaProducer] = None
        self.consumer: Optional[kafka.KafkaConsumer] = None
        self._consumer_task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the Kafka producer and consumer."""
        try:
            self.producer = kafka.KafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                value_serializer=lambda x: x.encode('utf-8'),
                key_serializer=lambda x: x.encode('utf-8') if x else None,
                acks='all',
                retries=3,
                linger_ms=10
            )
            self.consumer = kafka.KafkaConsumer(
                bootstrap_servers=self.bootstrap_servers,
                group_id=self.group_id,
                value_deserializer=lambda x: x.decode('utf-8'),
                key_deserializer=lambda x: x.decode('utf-8') if x else None,
                auto_offset_reset='earliest',
                enable_auto_commit=False,
                max_poll_records=100,
                session_timeout_ms=30000,
                heartbeat_interval_ms=10000
            )

            self.running = True
            self._consumer_task = asyncio.create_task(self._consume_loop())
            self.logger.info("Kafka transport started", group_id=self.group_id)

        except Exception as e:
            self.logger.error("Failed to start Kafka transport", error=str(e))
            raise CatalogException("KAFKA_START_FAILED", str(e))

    async def stop(self):
        """Stop the Kafka producer and consumer."""
        self.running = False
        if self._consumer_task:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass

        if self.consumer:
            self.consumer.close()
        if self.producer:
            self.producer.flush()
            self.producer.close()
        self.subscribed_topics.clear()
        self.message_handlers.clear()
        self.logger.info("Kafka transport stopped")

    async def publish(
        self,
        topic: str,
        value: str,
        key: Optional[str] = None,
        partition: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> None:
        if not self.producer:
            raise PublishError(topic, "Producer not started")

        kafka_headers = [(k, v.encode('utf-8')) for k, v in (headers or {}).items()]
        try:
            # send() can block on metadata while the broker is unreachable
            future = await self._run_blocking(
                self.producer.send,
                topic,
                value=value,
                key=key,
                partition=partition,
                headers=kafka_headers
            )
        except KafkaError as e:
            raise PublishError(topic, str(e)) from e

        future.add_errback(self._on_send_error, topic)

    def _on_send_error(self, topic: str, exc: Exception):
        self.logger.error("Kafka delivery failed", topic=topic, error=str(exc))

    async def subscribe(self, topic: str, handler: MessageHandler):
        """Subscribe to a Kafka topic."""
        if topic in self.subscribed_topics:
            self.logger.warning("Already subscribed to topic", topic=topic)
            return

        if not self.consumer:
            raise CatalogException("KAFKA_CONSUMER_NOT_STARTED", "Consumer not started")

        try:
            self.consumer.subscribe(self.subscribed_topics + [topic])
            self.subscribed_topics.append(topic)
            self.message_handlers[topic] = handler
            self.logger.info("Subscribed to topic", topic=topic)

        except Exception as e:
            self.logger.error("Failed to subscribe to topic", topic=topic, error=str(e))
            raise CatalogException("KAFKA_SUBSCRIBE_FAILED", str(e))

    async def _run_blocking(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def _consume_loop(self):
        """Main consumption loop."""
        while self.running:
            try:
                if not self.subscribed_topics:
                    await asyncio.sleep(0.5)
                    continue

                message_batch = await self._run_blocking(self.consumer.poll, timeout_ms=1000)
                if not message_batch:
                    continue

                failed = False
                for topic_partition, records in message_batch.items():
                    handler = self.message_handlers.get(topic_partition.topic)
                    if handler is None:
                        continue

                    for record in records:
                        if not await self._handle_record(handler, record):
                            # Rewind so the next poll returns this record again
                            self.consumer.seek(
                                kafka.TopicPartition(record.topic, record.partition),
                                record.offset
                            )
                            failed = True
                            break

                await self._run_blocking(self.consumer.commit)
                if failed:
                    await asyncio.sleep(self.redelivery_delay)

            except KafkaError as e:
                self.logger.error("Kafka error in consume loop", error=str(e))
                await asyncio.sleep(5)

            except asyncio.CancelledError:
                break

            except Exception as e:
                self.logger.error("Unexpected error in consume loop", error=str(e))
                await asyncio.sleep(1)

    async def _handle_record(self, handler: MessageHandler, record) -> bool:
        message = ChannelMessage(
            topic=record.topic,
            partition=record.partition,
            offset=record.offset,
            value=record.value,
            key=record.key,
            timestamp=record.timestamp,
            headers={k: v.decode('utf-8') for k, v in (record.headers or [])}
        )
        try:
            await handler(message)
            return True
        except Exception as e:
            self.logger.error(
                "Error processing message, will redeliver",
                topic=record.topic,
                partition=record.partition,
                offset=record.offset,
                error=str(e)
            )
            return False
