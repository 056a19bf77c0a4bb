"""
In-process ingestion queue.

An unbounded single-producer-handle / single-consumer channel built on
asyncio.Queue. The producer side (IngestionQueue) is shared by every
request handler; the consumer side (QueueReceiver) belongs to exactly one
IngestionProcessor.

Lifecycle:
- Open: enqueue() accepts items
- Draining: IngestionQueue.close() was called; the receiver yields the
  remaining items and then stops
- Dropped: QueueReceiver.close() was called; enqueue() fails
"""

import asyncio
import logging
from dataclasses import dataclass, field

from event_search.ingestion.config import IngestionConfig
from event_search.ingestion.schemas import ContentItem
from event_search.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

# Marks the end of the stream once the producer side is closed
_END_OF_STREAM = object()


class QueueClosedError(Exception):
    """Raised when enqueueing into a queue whose consumer is gone or producer is closed."""


@dataclass
class _Channel:
    """State shared by both ends of one queue."""

    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    producer_closed: bool = False
    receiver_closed: bool = False
    end_delivered: bool = False

    def pending(self) -> int:
        """Items waiting to be received, excluding the end marker."""
        marker = 1 if self.producer_closed and not self.end_delivered else 0
        return max(0, self.queue.qsize() - marker)


class QueueReceiver:
    """
    Consumer end of an IngestionQueue.

    Iterate with `async for`; iteration ends once the producer side is
    closed and every item enqueued before that has been yielded.
    """

    def __init__(self, channel: _Channel):
        self._channel = channel

    @property
    def closed(self) -> bool:
        return self._channel.receiver_closed

    async def recv(self) -> ContentItem | None:
        """
        Wait for the next item.

        Returns:
            The next item in FIFO order, or None once the stream has ended
        """
        if self._channel.end_delivered or self._channel.receiver_closed:
            return None

        item = await self._channel.queue.get()
        if item is _END_OF_STREAM:
            self._channel.end_delivered = True
            return None

        get_metrics().set_queue_depth(self._channel.pending())
        return item

    def close(self) -> None:
        """Drop the consumer end. Later enqueue() calls raise QueueClosedError."""
        if self._channel.receiver_closed:
            return
        self._channel.receiver_closed = True
        remaining = self._channel.pending()
        if remaining:
            logger.warning("Ingestion receiver closed with %d undelivered items", remaining)

    def __aiter__(self) -> "QueueReceiver":
        return self

    async def __anext__(self) -> ContentItem:
        item = await self.recv()
        if item is None:
            raise StopAsyncIteration
        return item


class IngestionQueue:
    """
    Producer end of the ingestion channel.

    Usage:
        queue, receiver = IngestionQueue.create()
        queue.enqueue(item)
        ...
        queue.close()  # receiver drains then ends
    """

    def __init__(self, channel: _Channel, config: IngestionConfig | None = None):
        self._channel = channel
        self._config = config or IngestionConfig()
        self._metrics = get_metrics()

    @classmethod
    def create(
        cls,
        config: IngestionConfig | None = None,
    ) -> tuple["IngestionQueue", QueueReceiver]:
        """Create a connected producer/receiver pair."""
        channel = _Channel()
        return cls(channel, config), QueueReceiver(channel)

    @property
    def depth(self) -> int:
        """Number of items waiting to be received."""
        return self._channel.pending()

    @property
    def is_closed(self) -> bool:
        return self._channel.producer_closed or self._channel.receiver_closed

    def enqueue(self, item: ContentItem) -> None:
        """
        Hand an item to the processor. Never blocks.

        Raises:
            QueueClosedError: If the receiver was dropped or close() was called
        """
        if self._channel.receiver_closed:
            raise QueueClosedError("Ingestion processor is no longer receiving")
        if self._channel.producer_closed:
            raise QueueClosedError("Ingestion queue is closed")

        self._channel.queue.put_nowait(item)
        depth = self._channel.pending()

        self._metrics.items_enqueued.inc()
        self._metrics.set_queue_depth(depth)

        if depth == self._config.depth_warning_threshold:
            logger.warning("Ingestion queue depth reached %d", depth)

    def close(self) -> None:
        """Stop accepting items; the receiver finishes the backlog and stops."""
        if self._channel.producer_closed:
            return
        self._channel.producer_closed = True
        self._channel.queue.put_nowait(_END_OF_STREAM)
        logger.info("Ingestion queue closed with %d pending items", self.depth)
