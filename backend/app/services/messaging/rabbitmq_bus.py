# backend/app/services/messaging/rabbitmq_bus.py
import logging
from typing import Any, List, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractRobustConnection

from app.core.config import settings
from app.services.messaging.bus import Delivery, DeliveryCallback, MessageBus, encode_message

logger = logging.getLogger(__name__)


class RabbitMQDelivery(Delivery):
    def __init__(self, message: AbstractIncomingMessage) -> None:
        self._message = message
        self.body = message.body

    async def ack(self) -> None:
        await self._message.ack()


class RabbitMQMessageBus(MessageBus):
    """
    aio-pika adapter. Queues are declared durable and messages persistent.
    Each consumer gets its own channel so prefetch applies per queue.
    """

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or settings.RABBITMQ_URL
        self._connection: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._consumer_channels: List[AbstractChannel] = []
        self._declared: set = set()

    async def connect(self) -> None:
        self._connection = await aio_pika.connect_robust(self.url)
        self._channel = await self._connection.channel()
        logger.info("Connected to RabbitMQ")

    def _require_channel(self) -> AbstractChannel:
        if self._channel is None:
            raise RuntimeError("RabbitMQMessageBus.connect() has not been awaited")
        return self._channel

    async def publish(self, queue: str, payload: Any) -> None:
        channel = self._require_channel()
        if queue not in self._declared:
            await channel.declare_queue(queue, durable=True)
            self._declared.add(queue)

        message = aio_pika.Message(
            body=encode_message(payload),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        await channel.default_exchange.publish(message, routing_key=queue)

    async def consume(self, queue: str, callback: DeliveryCallback, prefetch: int = 1) -> None:
        if self._connection is None:
            raise RuntimeError("RabbitMQMessageBus.connect() has not been awaited")

        channel = await self._connection.channel()
        await channel.set_qos(prefetch_count=prefetch)
        declared = await channel.declare_queue(queue, durable=True)
        self._consumer_channels.append(channel)

        async def on_message(message: AbstractIncomingMessage) -> None:
            await callback(RabbitMQDelivery(message))

        await declared.consume(on_message, no_ack=False)
        logger.info("Waiting for messages in %s (prefetch=%d)", queue, prefetch)

    async def close(self) -> None:
        for channel in self._consumer_channels:
            await channel.close()
        self._consumer_channels.clear()
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
