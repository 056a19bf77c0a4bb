"""
Vector store abstraction layer for semantic search.

Main components:
- VectorStore: Abstract base class defining the vector store interface
- LanceDBStore: Embedded LanceDB implementation (distance-scored)
- QdrantStore: Remote Qdrant implementation (similarity-scored)
- create_vector_store: Backend selection from configuration
- SemanticSearchService: Embed + store + search orchestration
- EmbeddedItem / VectorSearchHit / VectorSearchFilter: Shared data types
"""

from event_search.vectorstore.backends import create_vector_store
from event_search.vectorstore.base import (
    EmbeddedItem,
    ScoreKind,
    VectorBackend,
    VectorSearchFilter,
    VectorSearchHit,
    VectorStore,
    compute_relevance,
)
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.errors import (
    DimensionMismatchError,
    DuplicateItemError,
    ErrorVocabulary,
    VectorStoreError,
)
from event_search.vectorstore.lancedb_store import LanceDBStore
from event_search.vectorstore.manager import SemanticSearchService
from event_search.vectorstore.qdrant_store import QdrantStore
from event_search.vectorstore.schemas import (
    ScoredResult,
    ScoredSearchResponse,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "DimensionMismatchError",
    "DuplicateItemError",
    "EmbeddedItem",
    "ErrorVocabulary",
    "LanceDBStore",
    "QdrantStore",
    "ScoreKind",
    "ScoredResult",
    "ScoredSearchResponse",
    "SearchRequest",
    "SearchResponse",
    "SemanticSearchService",
    "VectorBackend",
    "VectorSearchFilter",
    "VectorSearchHit",
    "VectorStore",
    "VectorStoreConfig",
    "VectorStoreError",
    "compute_relevance",
    "create_vector_store",
]
