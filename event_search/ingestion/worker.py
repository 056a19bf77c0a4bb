"""
Ingestion processor - the single consumer of the ingestion queue.

Runs as a background task that:
1. Receives ContentItems from the QueueReceiver in arrival order
2. Hands each one to SemanticSearchService.embed_and_store_event
3. Logs and counts failures without stopping
"""

import asyncio
import time
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from event_search.ingestion.config import IngestionConfig
from event_search.ingestion.queue import IngestionQueue, QueueReceiver
from event_search.ingestion.schemas import ContentItem
from event_search.observability.logging import log_context
from event_search.observability.metrics import get_metrics

if TYPE_CHECKING:
    from event_search.vectorstore.manager import SemanticSearchService

logger = structlog.get_logger(__name__)


class ProcessorState(str, Enum):
    """Lifecycle of an IngestionProcessor."""

    IDLE = "idle"
    RECEIVING = "receiving"
    PROCESSING = "processing"
    CLOSED = "closed"


class IngestionProcessor:
    """
    Background consumer that embeds and stores queued items.

    One item is in flight at a time. A failure on one item is logged and
    the loop moves on to the next; the loop only ends when the queue is
    closed and drained, or the task is cancelled. On exit the receiver is
    closed so later enqueue() calls fail fast.

    Usage:
        queue, receiver = IngestionQueue.create()
        processor = IngestionProcessor(service, queue, receiver)
        processor.start()
        queue.enqueue(item)
        await processor.shutdown()
    """

    def __init__(
        self,
        service: "SemanticSearchService",
        queue: IngestionQueue,
        receiver: QueueReceiver,
        config: IngestionConfig | None = None,
    ):
        """
        Initialize the processor.

        Args:
            service: Service used to embed and store each item
            queue: Producer end, closed on shutdown
            receiver: Consumer end owned by this processor
            config: Ingestion configuration (uses defaults if None)
        """
        self._service = service
        self._queue = queue
        self._receiver = receiver
        self._config = config or IngestionConfig()
        self._metrics = get_metrics()
        self._task: asyncio.Task | None = None

        self._state = ProcessorState.IDLE
        self._processed = 0
        self._failed = 0

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def processed(self) -> int:
        """Items stored successfully (including duplicate no-ops)."""
        return self._processed

    @property
    def failed(self) -> int:
        """Items whose embedding or storage failed."""
        return self._failed

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        """Consume until the queue is closed and drained."""
        logger.info("Ingestion processor started")

        try:
            self._state = ProcessorState.RECEIVING
            async for item in self._receiver:
                self._state = ProcessorState.PROCESSING
                await self._process(item)
                self._state = ProcessorState.RECEIVING
        except asyncio.CancelledError:
            logger.info("Ingestion processor cancelled", pending=self._queue.depth)
            raise
        finally:
            self._receiver.close()
            self._state = ProcessorState.CLOSED
            logger.info(
                "Ingestion processor stopped",
                processed=self._processed,
                failed=self._failed,
            )

    async def _process(self, item: ContentItem) -> None:
        start = time.perf_counter()
        with log_context(item_id=item.id):
            try:
                await self._service.embed_and_store_event(item)
            except Exception as e:
                self._failed += 1
                self._metrics.record_item_processed(success=False)
                logger.error(
                    "Failed to process queued item",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return

            self._processed += 1
            self._metrics.record_item_processed(success=True)
            logger.debug(
                "Processed queued item",
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
            )

    def start(self) -> asyncio.Task:
        """Spawn run() as a background task."""
        if self._task is not None:
            raise RuntimeError("Ingestion processor already started")
        self._task = asyncio.create_task(self.run(), name="ingestion-processor")
        return self._task

    async def shutdown(self, timeout: float | None = None) -> None:
        """
        Close the queue and wait for the backlog to drain.

        Args:
            timeout: Seconds to wait before cancelling (uses config default if None)
        """
        timeout = self._config.shutdown_timeout if timeout is None else timeout
        self._queue.close()

        if self._task is None:
            self._receiver.close()
            self._state = ProcessorState.CLOSED
            return

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Ingestion drain timed out, cancelling",
                timeout=timeout,
                pending=self._queue.depth,
            )
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
