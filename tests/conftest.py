"""Pytest fixtures for event-search tests."""

import math
from typing import ClassVar

import pytest

from event_search.embedding.service import EmbeddingError
from event_search.ingestion.schemas import ContentItem
from event_search.vectorstore.base import (
    EmbeddedItem,
    ScoreKind,
    VectorBackend,
    VectorSearchHit,
    VectorStore,
)
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.errors import DuplicateItemError, ErrorVocabulary

TEST_DIMENSION = 4


class InMemoryVectorStore(VectorStore):
    """
    VectorStore keeping rows in a dict, scoring with exact L2 distance.

    `search_error`, `insert_error` and `index_error` can be set to make the
    next matching call raise, to simulate backend failures.
    """

    backend: ClassVar[VectorBackend] = VectorBackend.LANCEDB
    score_kind: ClassVar[ScoreKind] = ScoreKind.DISTANCE
    error_vocabulary: ClassVar[ErrorVocabulary] = ErrorVocabulary(
        missing_store=(("table", "not found"),),
        insufficient_rows=(("not enough rows to train",),),
        no_data=(("no data",),),
        already_indexed=(("index already exists",),),
    )

    def __init__(self, config: VectorStoreConfig | None = None):
        super().__init__(config)
        self.rows: dict[str, EmbeddedItem] = {}
        self.connected = False
        self.search_calls: list[dict] = []
        self.search_error: Exception | None = None
        self.insert_error: Exception | None = None
        self.index_error: Exception | None = None
        self.index_built = False

    @property
    def min_relevance(self) -> float:
        return self._config.lancedb_min_relevance

    @property
    def default_limit(self) -> int:
        return self._config.lancedb_default_limit

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def insert_one(self, item: EmbeddedItem) -> None:
        if self.insert_error is not None:
            raise self.insert_error
        if item.id in self.rows:
            raise DuplicateItemError([item.id])
        self.rows[item.id] = item

    async def insert_many(self, items: list[EmbeddedItem]) -> None:
        if self.insert_error is not None:
            raise self.insert_error
        skipped = [item.id for item in items if item.id in self.rows]
        for item in items:
            self.rows.setdefault(item.id, item)
        if skipped:
            raise DuplicateItemError(skipped)

    def _score(self, query: list[float], vector: list[float]) -> float:
        return math.sqrt(sum((a - b) ** 2 for a, b in zip(query, vector)))

    async def search(
        self,
        query_vector: list[float],
        limit: int,
        author: str | None = None,
        category: int | None = None,
        min_created_at: int | None = None,
        max_created_at: int | None = None,
    ) -> list[VectorSearchHit]:
        self.search_calls.append(
            {
                "limit": limit,
                "author": author,
                "category": category,
                "min_created_at": min_created_at,
                "max_created_at": max_created_at,
            }
        )
        if self.search_error is not None:
            raise self.search_error

        hits = [
            VectorSearchHit(
                item_id=row.id,
                raw_score=self._score(query_vector, row.embedding),
                payload=row.payload(),
            )
            for row in self.rows.values()
            if (author is None or row.author == author)
            and (category is None or row.category == category)
            and (min_created_at is None or row.created_at >= min_created_at)
            and (max_created_at is None or row.created_at <= max_created_at)
        ]
        hits.sort(key=lambda hit: hit.raw_score)
        return hits[:limit]

    async def create_index(self) -> None:
        if self.index_error is not None:
            raise self.index_error
        self.index_built = True

    async def count(self) -> int:
        return len(self.rows)


class ScriptedEmbedder:
    """
    Embedder returning fixed vectors per text.

    Unknown texts get `default`; texts in `failing` raise EmbeddingError.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        failing: set[str] | None = None,
    ):
        self.vectors = vectors or {}
        self.default = default or [0.0] * TEST_DIMENSION
        self.failing = failing or set()
        self.calls: list[str] = []
        self.closed = False

    async def generate_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.failing:
            raise EmbeddingError(f"embedding failed for {text!r}")
        return list(self.vectors.get(text, self.default))

    async def close(self) -> None:
        self.closed = True


def make_item(item_id: str, content: str = "", **kwargs) -> ContentItem:
    """Create a ContentItem with sensible defaults."""
    return ContentItem(
        id=item_id,
        author=kwargs.pop("author", "npub_alice"),
        created_at=kwargs.pop("created_at", 1_700_000_000),
        category=kwargs.pop("category", 1),
        tags=kwargs.pop("tags", [["t", "nostr"]]),
        content=content,
        **kwargs,
    )


@pytest.fixture
def store_config() -> VectorStoreConfig:
    """Vector store configuration with a small dimension for tests."""
    return VectorStoreConfig(dimension=TEST_DIMENSION)


@pytest.fixture
def memory_store(store_config) -> InMemoryVectorStore:
    """Connected-on-demand in-memory store."""
    return InMemoryVectorStore(store_config)


@pytest.fixture
def embedder() -> ScriptedEmbedder:
    """
    Embedder where "bitcoin" texts sit close to the "cryptocurrency" query
    and food texts sit far away.
    """
    return ScriptedEmbedder(
        vectors={
            "cryptocurrency": [1.0, 0.0, 0.0, 0.0],
            "bitcoin is digital currency": [0.9, 0.1, 0.0, 0.0],
            "pizza and pasta": [0.0, 0.0, 1.0, 1.0],
        },
    )


@pytest.fixture
def sample_item() -> ContentItem:
    """A single short text event."""
    return make_item("e1", "bitcoin is digital currency")


@pytest.fixture
def item_factory():
    """Factory for ContentItems: item_factory("e1", "text", author=...)."""
    return make_item


@pytest.fixture
def store_factory(store_config):
    """Factory for extra in-memory stores sharing the test config."""

    def _make(**overrides) -> InMemoryVectorStore:
        config = store_config.model_copy(update=overrides) if overrides else store_config
        return InMemoryVectorStore(config)

    return _make
