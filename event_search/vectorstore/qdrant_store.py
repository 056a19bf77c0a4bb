"""
Qdrant implementation of the VectorStore interface.

Remote vector database accessed through AsyncQdrantClient. Collections
use cosine similarity, so hit scores are already bounded similarities
and are used as relevance directly.
"""

import time
import uuid
from typing import Any

import structlog
from qdrant_client import AsyncQdrantClient, models

from event_search.observability.metrics import get_metrics
from event_search.vectorstore.base import (
    EmbeddedItem,
    ScoreKind,
    VectorBackend,
    VectorSearchHit,
    VectorStore,
    split_repeated_ids,
)
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.errors import DuplicateItemError, ErrorVocabulary

logger = structlog.get_logger(__name__)

# Namespace for deriving stable point ids from item ids
POINT_ID_NAMESPACE = uuid.UUID("6f1c2a1e-7d0b-4c55-9f7e-3c1f0e2b8a94")

# Payload fields that get an index, with their schema
PAYLOAD_INDEXES: dict[str, models.PayloadSchemaType] = {
    "author": models.PayloadSchemaType.KEYWORD,
    "category": models.PayloadSchemaType.INTEGER,
    "created_at": models.PayloadSchemaType.INTEGER,
}


def point_id_for(item_id: str) -> str:
    """Deterministic Qdrant point id (UUID string) for an item id."""
    return str(uuid.uuid5(POINT_ID_NAMESPACE, item_id))


def build_filter(
    author: str | None = None,
    category: int | None = None,
    min_created_at: int | None = None,
    max_created_at: int | None = None,
) -> models.Filter | None:
    """
    Build a Qdrant filter where every supplied condition must hold.

    Returns:
        Filter with `must` conditions, or None when no filter is set
    """
    conditions: list[models.Condition] = []

    if author is not None:
        conditions.append(
            models.FieldCondition(key="author", match=models.MatchValue(value=author))
        )
    if category is not None:
        conditions.append(
            models.FieldCondition(key="category", match=models.MatchValue(value=category))
        )
    if min_created_at is not None or max_created_at is not None:
        conditions.append(
            models.FieldCondition(
                key="created_at",
                range=models.Range(gte=min_created_at, lte=max_created_at),
            )
        )

    return models.Filter(must=conditions) if conditions else None


class QdrantStore(VectorStore):
    """
    Qdrant-based vector store implementation.

    Features:
    - Cosine collections with optional scalar INT8 quantization
    - UUIDv5 point ids derived from item ids; the item id lives in the payload
    - Existing points are never overwritten
    - Payload indexes on filter fields via create_index()
    """

    backend = VectorBackend.QDRANT
    score_kind = ScoreKind.SIMILARITY
    error_vocabulary = ErrorVocabulary(
        missing_store=(("collection", "not found"), ("collection", "doesn't exist")),
        no_data=(("no data",), ("collection", "is empty")),
        insufficient_rows=(("not enough",), ("insufficient",)),
        already_indexed=(("index already",), ("already optimized",)),
    )

    def __init__(
        self,
        config: VectorStoreConfig | None = None,
        client: AsyncQdrantClient | None = None,
    ):
        """
        Initialize Qdrant store.

        Args:
            config: Optional configuration (url, collection, thresholds)
            client: Pre-built client (created on connect() if not provided)
        """
        super().__init__(config)
        self._collection = self._config.qdrant_collection
        self._client = client
        self._metrics = get_metrics()

    @property
    def min_relevance(self) -> float:
        return self._config.qdrant_min_relevance

    @property
    def default_limit(self) -> int:
        return self._config.qdrant_default_limit

    @property
    def client(self) -> AsyncQdrantClient:
        """Get Qdrant client, raising if not connected."""
        if self._client is None:
            raise RuntimeError("Not connected to Qdrant. Call connect() first.")
        return self._client

    async def connect(self) -> None:
        """Create the client and the collection if it does not exist."""
        if self._client is None:
            api_key = self._config.qdrant_api_key
            self._client = AsyncQdrantClient(
                url=self._config.qdrant_url,
                api_key=api_key.get_secret_value() if api_key else None,
                prefer_grpc=self._config.qdrant_prefer_grpc,
            )

        if not await self.client.collection_exists(self._collection):
            quantization = None
            if self._config.qdrant_quantization:
                quantization = models.ScalarQuantization(
                    scalar=models.ScalarQuantizationConfig(type=models.ScalarType.INT8),
                )
            await self.client.create_collection(
                collection_name=self._collection,
                vectors_config=models.VectorParams(
                    size=self.dimension,
                    distance=models.Distance.COSINE,
                ),
                quantization_config=quantization,
            )
            logger.info("Created Qdrant collection", collection=self._collection)

        logger.info(
            "Connected to Qdrant",
            url=self._config.qdrant_url,
            collection=self._collection,
            dimension=self.dimension,
        )

    async def close(self) -> None:
        """Close the client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Qdrant connection closed", collection=self._collection)

    def _to_point(self, item: EmbeddedItem) -> models.PointStruct:
        return models.PointStruct(
            id=point_id_for(item.id),
            vector=item.embedding,
            payload=item.payload(),
        )

    async def _existing_ids(self, items: list[EmbeddedItem]) -> set[str]:
        """Return the item ids whose points already exist."""
        by_point = {point_id_for(item.id): item.id for item in items}
        records = await self.client.retrieve(
            collection_name=self._collection,
            ids=list(by_point),
            with_payload=False,
            with_vectors=False,
        )
        return {by_point[str(record.id)] for record in records if str(record.id) in by_point}

    async def _write(self, items: list[EmbeddedItem]) -> None:
        batch_size = self._config.insert_batch_size
        for start in range(0, len(items), batch_size):
            chunk = items[start:start + batch_size]
            await self.client.upsert(
                collection_name=self._collection,
                points=[self._to_point(item) for item in chunk],
                wait=True,
            )

    async def insert_one(self, item: EmbeddedItem) -> None:
        """
        Insert one point.

        Raises:
            DuplicateItemError: If a point for this id already exists
        """
        start = time.perf_counter()

        if await self._existing_ids([item]):
            raise DuplicateItemError([item.id])

        await self._write([item])
        self._metrics.record_store_latency("insert_one", time.perf_counter() - start)

    async def insert_many(self, items: list[EmbeddedItem]) -> None:
        """
        Insert a batch of points, skipping ids that already exist.

        An id repeated within the batch is written once, from its first
        occurrence.

        Raises:
            DuplicateItemError: After writing the new points, if any id was skipped
        """
        if not items:
            return

        start = time.perf_counter()
        unique, repeated = split_repeated_ids(items)

        existing = await self._existing_ids(unique)
        fresh = [item for item in unique if item.id not in existing]

        if fresh:
            await self._write(fresh)

        self._metrics.record_store_latency("insert_many", time.perf_counter() - start)
        logger.debug(
            "Qdrant batch insert",
            inserted=len(fresh),
            skipped=len(existing),
            repeated=len(repeated),
        )

        skipped = sorted(existing) + repeated
        if skipped:
            raise DuplicateItemError(skipped)

    async def search(
        self,
        query_vector: list[float],
        limit: int,
        author: str | None = None,
        category: int | None = None,
        min_created_at: int | None = None,
        max_created_at: int | None = None,
    ) -> list[VectorSearchHit]:
        """
        Approximate nearest-neighbor search returning cosine similarities.

        Returns:
            Hits ordered by descending similarity
        """
        start = time.perf_counter()

        response = await self.client.query_points(
            collection_name=self._collection,
            query=query_vector,
            query_filter=build_filter(author, category, min_created_at, max_created_at),
            limit=limit,
            with_payload=True,
            search_params=models.SearchParams(exact=False),
        )

        self._metrics.record_store_latency("search", time.perf_counter() - start)

        hits: list[VectorSearchHit] = []
        for point in response.points:
            payload: dict[str, Any] = dict(point.payload or {})
            item_id = payload.get("id")
            if not isinstance(item_id, str):
                logger.warning("Qdrant point without item id", point_id=str(point.id))
                continue
            hits.append(VectorSearchHit(item_id=item_id, raw_score=point.score, payload=payload))

        return hits

    async def create_index(self) -> None:
        """
        Create payload indexes for the filterable fields.

        The HNSW vector index is maintained by Qdrant itself; this only adds
        the keyword/integer indexes used by filtered searches.
        """
        start = time.perf_counter()

        for field_name, schema in PAYLOAD_INDEXES.items():
            await self.client.create_payload_index(
                collection_name=self._collection,
                field_name=field_name,
                field_schema=schema,
                wait=True,
            )

        self._metrics.record_store_latency("create_index", time.perf_counter() - start)
        logger.info(
            "Qdrant payload indexes ensured",
            collection=self._collection,
            fields=list(PAYLOAD_INDEXES),
        )

    async def count(self) -> int:
        """Number of points in the collection."""
        result = await self.client.count(collection_name=self._collection, exact=True)
        return result.count
