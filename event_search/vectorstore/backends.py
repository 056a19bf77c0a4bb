"""
Backend selection for vector stores.

The set of backends is closed: VectorBackend enumerates them and
create_vector_store() picks the implementation at construction time.
"""

from event_search.vectorstore.base import VectorBackend, VectorStore
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.lancedb_store import LanceDBStore
from event_search.vectorstore.qdrant_store import QdrantStore

_BACKENDS: dict[VectorBackend, type[VectorStore]] = {
    VectorBackend.LANCEDB: LanceDBStore,
    VectorBackend.QDRANT: QdrantStore,
}


def create_vector_store(config: VectorStoreConfig | None = None) -> VectorStore:
    """
    Build the vector store selected by config.backend.

    The store is not connected yet; call connect() or use it as an async
    context manager.

    Args:
        config: Vector store configuration (uses defaults if None)

    Returns:
        Unconnected VectorStore for the configured backend
    """
    config = config or VectorStoreConfig()
    store_cls = _BACKENDS[VectorBackend(config.backend)]
    return store_cls(config=config)
