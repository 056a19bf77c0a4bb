"""
Abstract base class and data models for vector store implementations.

Defines the interface that all vector store backends must implement,
plus shared data structures for stored items, search hits and filters.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import Any, ClassVar

from event_search.ingestion.schemas import ContentItem
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.errors import DimensionMismatchError, ErrorVocabulary


class VectorBackend(str, Enum):
    """Supported vector store backends."""

    LANCEDB = "lancedb"
    QDRANT = "qdrant"


class ScoreKind(str, Enum):
    """How a backend reports closeness of a hit to the query."""

    DISTANCE = "distance"  # lower = more similar, unbounded
    SIMILARITY = "similarity"  # higher = more similar, bounded


def compute_relevance(raw_score: float, kind: ScoreKind) -> float:
    """
    Normalize a backend score into a relevance value in [0, 1].

    Distances map through 1 / (1 + d); native similarities are taken
    as-is. Both are clamped to [0, 1].
    """
    if kind is ScoreKind.DISTANCE:
        relevance = 1.0 / (1.0 + raw_score) if raw_score > -1.0 else 1.0
    else:
        relevance = raw_score
    return max(0.0, min(1.0, relevance))


@dataclass(frozen=True)
class EmbeddedItem:
    """
    A ContentItem's identity and metadata plus its embedding.

    Tags are stored as a single JSON string. Owned by the vector store once
    inserted and never mutated.

    Attributes:
        id: Item id (natural key)
        author: Author identifier
        created_at: Unix seconds
        category: Integer category
        tags: JSON-serialized tag list
        embedding: Vector of the store's configured dimension
    """

    id: str
    author: str
    created_at: int
    category: int
    tags: str
    embedding: list[float]

    @classmethod
    def from_content(
        cls,
        item: ContentItem,
        embedding: list[float],
        dimension: int,
    ) -> "EmbeddedItem":
        """
        Build an EmbeddedItem, enforcing the store dimension.

        Raises:
            DimensionMismatchError: If len(embedding) != dimension
        """
        if len(embedding) != dimension:
            raise DimensionMismatchError(dimension, len(embedding), item_id=item.id)

        return cls(
            id=item.id,
            author=item.author,
            created_at=item.created_at,
            category=item.category,
            tags=json.dumps(item.tags),
            embedding=[float(x) for x in embedding],
        )

    def decoded_tags(self) -> list[list[str]]:
        """Parse the stored tag string back into tag tuples."""
        return json.loads(self.tags) if self.tags else []

    def payload(self) -> dict[str, Any]:
        """Metadata columns persisted next to the vector."""
        return {
            "id": self.id,
            "author": self.author,
            "created_at": self.created_at,
            "category": self.category,
            "tags": self.tags,
        }


def split_repeated_ids(
    items: list[EmbeddedItem],
) -> tuple[list[EmbeddedItem], list[str]]:
    """
    Keep the first item for each id.

    Returns:
        (unique items in input order, ids of the dropped repeats)
    """
    seen: set[str] = set()
    unique: list[EmbeddedItem] = []
    repeated: list[str] = []
    for item in items:
        if item.id in seen:
            repeated.append(item.id)
            continue
        seen.add(item.id)
        unique.append(item)
    return unique, repeated


@dataclass
class VectorSearchHit:
    """
    A raw candidate returned by a backend search.

    Attributes:
        item_id: Id of the matched item
        raw_score: Distance or similarity, as reported by the backend
        payload: Stored metadata for the item
    """

    item_id: str
    raw_score: float
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorSearchFilter:
    """
    Structured filter for vector searches.

    All supplied filters are combined with AND logic: each one narrows
    the candidate set.

    Attributes:
        author: Exact author match
        category: Exact category match
        min_created_at: Inclusive lower bound on created_at (unix seconds)
        max_created_at: Inclusive upper bound on created_at (unix seconds)
    """

    author: str | None = None
    category: int | None = None
    min_created_at: int | None = None
    max_created_at: int | None = None

    def __post_init__(self) -> None:
        """Validate the time range."""
        if (
            self.min_created_at is not None
            and self.max_created_at is not None
            and self.min_created_at > self.max_created_at
        ):
            raise ValueError(
                f"min_created_at ({self.min_created_at}) must not exceed "
                f"max_created_at ({self.max_created_at})"
            )

    @property
    def is_empty(self) -> bool:
        """Check if no filters are set."""
        return (
            self.author is None
            and self.category is None
            and self.min_created_at is None
            and self.max_created_at is None
        )


class VectorStore(ABC):
    """
    Abstract base class for vector store implementations.

    Each backend advertises how it scores hits (score_kind) and the
    phrases it uses for recoverable failures (error_vocabulary). Stores
    surface raw backend errors; reclassification happens in
    SemanticSearchService.

    All I/O methods are async. Writes are safe to run concurrently with
    searches; no isolation beyond eventual visibility is provided.
    """

    backend: ClassVar[VectorBackend]
    score_kind: ClassVar[ScoreKind]
    error_vocabulary: ClassVar[ErrorVocabulary] = ErrorVocabulary()

    def __init__(self, config: VectorStoreConfig | None = None):
        self._config = config or VectorStoreConfig()

    @property
    def config(self) -> VectorStoreConfig:
        return self._config

    @property
    def dimension(self) -> int:
        """Embedding dimension, fixed for the lifetime of the store."""
        return self._config.dimension

    @property
    @abstractmethod
    def min_relevance(self) -> float:
        """Minimum relevance a hit needs to be returned."""
        ...

    @property
    @abstractmethod
    def default_limit(self) -> int:
        """Result limit used when a request does not set one."""
        ...

    @property
    def candidate_limit(self) -> int:
        """Number of candidates fetched before relevance filtering."""
        return self._config.candidate_limit

    @abstractmethod
    async def connect(self) -> None:
        """Open the backend connection and create the table/collection if missing."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the backend connection."""
        ...

    async def __aenter__(self) -> "VectorStore":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def insert_one(self, item: EmbeddedItem) -> None:
        """
        Persist one vector and its payload.

        Raises:
            DuplicateItemError: If the id already exists (row left untouched)
        """
        ...

    @abstractmethod
    async def insert_many(self, items: list[EmbeddedItem]) -> None:
        """
        Persist a batch of vectors in one backend call.

        Empty input is a no-op. Ids already present are skipped and
        reported via DuplicateItemError after the rest are written.
        """
        ...

    @abstractmethod
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
        Nearest-neighbor search with AND-combined filters.

        Args:
            query_vector: Query embedding
            limit: Maximum number of candidates to return
            author: Exact author filter
            category: Exact category filter
            min_created_at: Inclusive lower time bound
            max_created_at: Inclusive upper time bound

        Returns:
            Raw hits with backend-native scores, in backend order
        """
        ...

    @abstractmethod
    async def create_index(self) -> None:
        """Build the backend index. Raw backend errors propagate."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of stored items."""
        ...

    async def health_check(self) -> bool:
        """Check that the backend answers."""
        try:
            await self.count()
            return True
        except Exception:
            return False
