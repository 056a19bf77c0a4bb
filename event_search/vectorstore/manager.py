"""
High-level orchestration of embedding and vector storage.

SemanticSearchService combines an embedder and a VectorStore: it embeds
items and stores them, turns structured search requests into a query
vector plus filters, and turns raw backend hits into a relevance-ranked
id list. All reclassification of backend failures into soft successes
happens here, never inside the stores.
"""

import time
from typing import Any, Protocol

import structlog

from event_search.ingestion.schemas import ContentItem
from event_search.observability.metrics import get_metrics
from event_search.vectorstore.base import (
    EmbeddedItem,
    ScoreKind,
    VectorSearchFilter,
    VectorSearchHit,
    VectorStore,
    compute_relevance,
)
from event_search.vectorstore.errors import DimensionMismatchError
from event_search.vectorstore.schemas import (
    ScoredResult,
    ScoredSearchResponse,
    SearchRequest,
    SearchResponse,
)

logger = structlog.get_logger(__name__)


class Embedder(Protocol):
    """Anything that turns text into a fixed-length vector."""

    async def generate_embedding(self, text: str) -> list[float]: ...


def rank_hits(
    hits: list[VectorSearchHit],
    score_kind: ScoreKind,
    min_relevance: float,
    limit: int,
) -> list[ScoredResult]:
    """
    Normalize, filter and order raw backend hits.

    An id reported more than once keeps only its most relevant hit. Hits
    whose relevance is below min_relevance are dropped, the rest are
    sorted by descending relevance (ties keep backend order) and truncated
    to limit.
    """
    best: dict[str, ScoredResult] = {}
    for hit in hits:
        result = ScoredResult(
            event_id=hit.item_id,
            relevance_score=compute_relevance(hit.raw_score, score_kind),
            raw_score=hit.raw_score,
        )
        current = best.get(result.event_id)
        if current is None:
            best[result.event_id] = result
        elif result.relevance_score > current.relevance_score:
            # Replacing the value keeps the id's first position
            best[result.event_id] = result

    kept = [result for result in best.values() if result.relevance_score >= min_relevance]
    kept.sort(key=lambda result: result.relevance_score, reverse=True)
    return kept[:limit]


class SemanticSearchService:
    """
    Embed-and-store plus semantic search over a single VectorStore.

    The service does not serialize writes: direct calls and the ingestion
    processor may insert concurrently. Correctness relies on inserts being
    keyed by item id and idempotent on duplicates; a store that cannot
    guarantee that for concurrent writers of one id locks per id itself.

    Usage:
        async with LanceDBStore(config) as store:
            service = SemanticSearchService(store, EmbeddingService())
            await service.embed_and_store_event(item)
            response = await service.semantic_search(SearchRequest(search="bitcoin"))
    """

    def __init__(self, vector_store: VectorStore, embedder: Embedder):
        """
        Initialize the service.

        Args:
            vector_store: Connected VectorStore backend
            embedder: Text embedder producing vectors of the store's dimension
        """
        self._store = vector_store
        self._embedder = embedder
        self._vocabulary = vector_store.error_vocabulary
        self._metrics = get_metrics()

    @property
    def store(self) -> VectorStore:
        return self._store

    def _embedded(self, item: ContentItem, embedding: list[float]) -> EmbeddedItem:
        return EmbeddedItem.from_content(item, embedding, self._store.dimension)

    async def embed_and_store_event(self, item: ContentItem) -> None:
        """
        Embed one item's content and insert it.

        An id that already exists is logged and treated as success.

        Raises:
            EmbeddingError: If the embedder fails
            DimensionMismatchError: If the embedding has the wrong length
            Exception: Any other backend error, unchanged
        """
        embedding = await self._embedder.generate_embedding(item.content)
        embedded = self._embedded(item, embedding)

        try:
            await self._store.insert_one(embedded)
        except Exception as e:
            if not self._vocabulary.is_duplicate(e):
                raise
            logger.warning(
                "Item already exists in store, skipping insertion",
                item_id=item.id,
                backend=self._store.backend.value,
            )
            self._metrics.record_soft_success("duplicate")
            return

        logger.debug("Stored item", item_id=item.id, backend=self._store.backend.value)

    async def embed_and_store_events(self, items: list[ContentItem]) -> int:
        """
        Embed items independently and insert the survivors as one batch.

        Items whose embedding fails are dropped from the batch. Duplicate
        ids in the batch are treated as a partial success.

        Returns:
            Number of items submitted to the store

        Raises:
            Exception: Backend errors other than duplicates, unchanged
        """
        embedded_items: list[EmbeddedItem] = []

        for item in items:
            try:
                embedding = await self._embedder.generate_embedding(item.content)
                embedded_items.append(self._embedded(item, embedding))
            except Exception as e:
                logger.warning(
                    "Dropping item from batch, embedding failed",
                    item_id=item.id,
                    error=str(e),
                )

        if not embedded_items:
            return 0

        try:
            await self._store.insert_many(embedded_items)
        except Exception as e:
            if not self._vocabulary.is_duplicate(e):
                raise
            logger.warning(
                "Some items already exist in store, insertion partially completed",
                submitted=len(embedded_items),
                backend=self._store.backend.value,
            )
            self._metrics.record_soft_success("duplicate")

        logger.info(
            "Stored item batch",
            requested=len(items),
            submitted=len(embedded_items),
            dropped=len(items) - len(embedded_items),
        )
        return len(embedded_items)

    async def semantic_search_with_scores(
        self,
        request: SearchRequest,
    ) -> ScoredSearchResponse:
        """
        Search and return hits with their normalized relevance.

        A missing table/collection or an empty store yields an empty
        response rather than an error.
        """
        start = time.perf_counter()
        limit = request.limit or self._store.default_limit

        query_embedding = await self._embedder.generate_embedding(request.query)
        if len(query_embedding) != self._store.dimension:
            raise DimensionMismatchError(self._store.dimension, len(query_embedding))

        search_filter = VectorSearchFilter(
            author=request.author,
            category=request.category_filter,
            min_created_at=request.min_created_at,
            max_created_at=request.max_created_at,
        )

        try:
            hits = await self._store.search(
                query_embedding,
                limit=max(limit, self._store.candidate_limit),
                author=search_filter.author,
                category=search_filter.category,
                min_created_at=search_filter.min_created_at,
                max_created_at=search_filter.max_created_at,
            )
        except Exception as e:
            if self._vocabulary.is_missing_store(e):
                logger.warning(
                    "Table or collection not found, returning empty results",
                    backend=self._store.backend.value,
                )
                self._metrics.record_soft_success("missing_store")
                self._metrics.record_search(0)
                return ScoredSearchResponse.empty()
            if self._vocabulary.is_no_data(e):
                logger.warning(
                    "No data available for search, returning empty results",
                    backend=self._store.backend.value,
                )
                self._metrics.record_soft_success("no_data")
                self._metrics.record_search(0)
                return ScoredSearchResponse.empty()
            self._metrics.record_search(None)
            raise

        results = rank_hits(
            hits,
            score_kind=self._store.score_kind,
            min_relevance=self._store.min_relevance,
            limit=limit,
        )

        latency = time.perf_counter() - start
        self._metrics.record_search(len(results))
        self._metrics.record_search_latency(latency)
        logger.info(
            "Semantic search completed",
            query_length=len(request.query),
            filtered=not search_filter.is_empty,
            candidates=len(hits),
            results=len(results),
            latency_ms=round(latency * 1000, 2),
        )
        return ScoredSearchResponse(results=results, total_found=len(results))

    async def semantic_search(self, request: SearchRequest) -> SearchResponse:
        """
        Search and return item ids ordered by descending relevance.

        Only the first requested category is applied. The limit bounds the
        number of ids returned after relevance filtering.
        """
        scored = await self.semantic_search_with_scores(request)
        return scored.to_response()

    async def create_index(self) -> None:
        """
        Build the store index.

        Too few rows to build yet, or an index that already exists, are
        logged and treated as success; the caller may retry after more
        inserts.
        """
        try:
            await self._store.create_index()
        except Exception as e:
            if self._vocabulary.is_insufficient_rows(e):
                logger.warning(
                    "Not enough data to build index yet, deferring",
                    backend=self._store.backend.value,
                    error=str(e),
                )
                self._metrics.record_soft_success("index_deferred")
                return
            if self._vocabulary.is_already_indexed(e):
                logger.warning(
                    "Index already exists",
                    backend=self._store.backend.value,
                )
                self._metrics.record_soft_success("index_exists")
                return
            raise

        logger.info("Index created", backend=self._store.backend.value)

    async def health_check(self) -> dict[str, Any]:
        """Report store reachability and size."""
        try:
            count = await self._store.count()
            return {"backend": self._store.backend.value, "healthy": True, "count": count}
        except Exception as e:
            return {
                "backend": self._store.backend.value,
                "healthy": False,
                "error": str(e),
            }

    async def close(self) -> None:
        """Close the embedder (if it holds resources) and the store."""
        close = getattr(self._embedder, "close", None)
        if close is not None:
            await close()
        await self._store.close()
