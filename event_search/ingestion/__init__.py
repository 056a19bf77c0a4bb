"""Ingestion module - item schema, in-process queue and its processor."""

from event_search.ingestion.config import IngestionConfig
from event_search.ingestion.queue import IngestionQueue, QueueClosedError, QueueReceiver
from event_search.ingestion.schemas import ContentItem

__all__ = [
    "ContentItem",
    "IngestionConfig",
    "IngestionQueue",
    "QueueClosedError",
    "QueueReceiver",
]
