# backend/app/services/messaging/consumer.py
import logging
import traceback
from enum import Enum
from typing import Awaitable, Callable, Optional

from app.core.errors import PipelineError
from app.services.messaging.bus import Delivery, MessageBus

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], Awaitable[object]]


class Outcome(str, Enum):
    PROCESSED = "processed"
    DROPPED = "dropped"
    DEAD_LETTERED = "dead_lettered"


class QueueConsumer:
    """
    Runs one handler per delivery and turns its result into an outcome.

    Every delivery is acked, success or not, so a poison message can never
    block the queue. Failures are logged with the error's context (never the
    body) and, when a dead-letter queue is configured, republished there first.
    """

    def __init__(
        self,
        bus: MessageBus,
        queue: str,
        handler: MessageHandler,
        dead_letter_queue: Optional[str] = None,
        prefetch: int = 1,
    ) -> None:
        self.bus = bus
        self.queue = queue
        self.handler = handler
        self.dead_letter_queue = dead_letter_queue
        self.prefetch = max(1, prefetch)

    async def start(self) -> None:
        await self.bus.consume(self.queue, self.on_delivery, prefetch=self.prefetch)

    async def on_delivery(self, delivery: Delivery) -> Outcome:
        try:
            outcome = await self.process(delivery.body)
        finally:
            await delivery.ack()
        return outcome

    async def process(self, body: bytes) -> Outcome:
        try:
            await self.handler(body)
            return Outcome.PROCESSED
        except PipelineError as exc:
            logger.warning(
                "Failed to process message from %s: %s (%s) context=%s",
                self.queue, exc, type(exc).__name__, exc.context,
            )
            error = f"{type(exc).__name__}: {exc}"
        except Exception as exc:
            logger.exception("Unexpected error processing message from %s", self.queue)
            error = "".join(traceback.format_exception_only(type(exc), exc)).strip()

        return await self._dead_letter(body, error)

    async def _dead_letter(self, body: bytes, error: str) -> Outcome:
        if not self.dead_letter_queue:
            return Outcome.DROPPED

        try:
            await self.bus.publish(
                self.dead_letter_queue,
                {
                    "queue": self.queue,
                    "error": error,
                    "body": body.decode("utf-8", errors="replace"),
                },
            )
        except Exception:
            logger.exception(
                "Could not dead-letter message from %s to %s; dropping it",
                self.queue, self.dead_letter_queue,
            )
            return Outcome.DROPPED

        logger.info("Message from %s moved to dead-letter queue %s", self.queue, self.dead_letter_queue)
        return Outcome.DEAD_LETTERED
