"""
Dependency injection for FastAPI endpoints.

Services are process-wide singletons created on first use and torn down
by cleanup_dependencies() at shutdown.
"""

import redis.asyncio as redis
import structlog

from event_search.config.settings import get_settings
from event_search.embedding.config import EmbeddingConfig
from event_search.embedding.service import EmbeddingService
from event_search.ingestion.config import IngestionConfig
from event_search.ingestion.queue import IngestionQueue
from event_search.ingestion.worker import IngestionProcessor
from event_search.vectorstore.backends import create_vector_store
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.manager import SemanticSearchService

logger = structlog.get_logger(__name__)

# Global service instances (initialized on first request)
_redis_client: redis.Redis | None = None
_search_service: SemanticSearchService | None = None
_ingestion_queue: IngestionQueue | None = None
_ingestion_processor: IngestionProcessor | None = None


async def get_search_service() -> SemanticSearchService:
    """
    Get the semantic search service.

    Connects the configured vector store and creates the embedding client
    (with Redis caching when EMBEDDING_CACHE_ENABLED is set).
    """
    global _search_service, _redis_client

    if _search_service is None:
        settings = get_settings()
        embedding_config = EmbeddingConfig()

        if embedding_config.cache_enabled and _redis_client is None:
            _redis_client = redis.from_url(
                str(settings.redis_url),
                encoding="utf-8",
                decode_responses=True,
            )

        store = create_vector_store(VectorStoreConfig())
        await store.connect()

        _search_service = SemanticSearchService(
            vector_store=store,
            embedder=EmbeddingService(config=embedding_config, redis_client=_redis_client),
        )

    return _search_service


async def get_ingestion_queue() -> IngestionQueue:
    """
    Get the ingestion queue, starting its processor on first use.
    """
    global _ingestion_queue, _ingestion_processor

    if _ingestion_queue is None:
        service = await get_search_service()
        config = IngestionConfig()
        queue, receiver = IngestionQueue.create(config)
        processor = IngestionProcessor(service, queue, receiver, config)
        processor.start()

        _ingestion_queue = queue
        _ingestion_processor = processor

    return _ingestion_queue


async def get_ingestion_processor() -> IngestionProcessor | None:
    """Get the running ingestion processor, if one was started."""
    return _ingestion_processor


async def cleanup_dependencies() -> None:
    """Drain the ingestion queue and close global dependencies on shutdown."""
    global _redis_client, _search_service, _ingestion_queue, _ingestion_processor

    if _ingestion_processor is not None:
        await _ingestion_processor.shutdown()
        _ingestion_processor = None
        _ingestion_queue = None

    if _search_service is not None:
        await _search_service.close()
        _search_service = None

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
