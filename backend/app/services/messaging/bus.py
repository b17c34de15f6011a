# backend/app/services/messaging/bus.py
import abc
import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from app.core.errors import MalformedMessageError

logger = logging.getLogger(__name__)


# --------------------------------------------------------
# Wire encoding: compact, newline-free UTF-8 JSON objects
# --------------------------------------------------------
def encode_message(payload: Any) -> bytes:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    # datetimes -> isoformat, enums -> values, etc.
    return json.dumps(jsonable_encoder(payload), separators=(",", ":")).encode("utf-8")


def decode_message(body: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedMessageError(f"Message body is not UTF-8 JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedMessageError(
            f"Message body must be a JSON object, got {type(data).__name__}"
        )
    return data


class Delivery(abc.ABC):
    """One message handed to a consumer; must be acked exactly once."""

    body: bytes

    @abc.abstractmethod
    async def ack(self) -> None:
        ...


DeliveryCallback = Callable[[Delivery], Awaitable[None]]


class MessageBus(abc.ABC):
    """Durable at-least-once queues with manual acknowledgment."""

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    @abc.abstractmethod
    async def publish(self, queue: str, payload: Any) -> None:
        ...

    @abc.abstractmethod
    async def consume(self, queue: str, callback: DeliveryCallback, prefetch: int = 1) -> None:
        """Register `callback` for every delivery on `queue` and return."""


# --------------------------------------------------------
# In-memory bus (local runs / tests)
# --------------------------------------------------------
class InMemoryDelivery(Delivery):
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.acked = False

    async def ack(self) -> None:
        self.acked = True


class InMemoryMessageBus(MessageBus):
    """
    asyncio.Queue per queue name. Deliveries to one consumer are handled
    one at a time, in publish order. Every published body is also kept in
    `published` so tests and the dev console can inspect traffic.
    """

    def __init__(self) -> None:
        self._queues: Dict[str, asyncio.Queue] = {}
        self._tasks: List[asyncio.Task] = []
        self.published: Dict[str, List[bytes]] = defaultdict(list)

    def _queue(self, name: str) -> asyncio.Queue:
        if name not in self._queues:
            self._queues[name] = asyncio.Queue()
        return self._queues[name]

    async def publish(self, queue: str, payload: Any) -> None:
        body = encode_message(payload)
        self.published[queue].append(body)
        await self._queue(queue).put(body)

    async def consume(self, queue: str, callback: DeliveryCallback, prefetch: int = 1) -> None:
        self._tasks.append(asyncio.create_task(self._drain(queue, callback)))

    async def _drain(self, queue: str, callback: DeliveryCallback) -> None:
        q = self._queue(queue)
        while True:
            body = await q.get()
            try:
                await callback(InMemoryDelivery(body))
            except Exception:
                logger.exception("Unhandled error in consumer for queue %s", queue)
            finally:
                q.task_done()

    async def join(self, *queues: str) -> None:
        """Wait until every message put on `queues` has been handled."""
        for name in queues:
            await self._queue(name).join()

    def messages(self, queue: str) -> List[Dict[str, Any]]:
        return [json.loads(b) for b in self.published.get(queue, [])]

    async def close(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
