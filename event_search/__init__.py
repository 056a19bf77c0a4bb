"""
event-search: embedding-backed semantic search over a stream of content items.

Items are embedded into fixed-dimension vectors, persisted in a pluggable
vector store (LanceDB or Qdrant), and retrieved by nearest-neighbor query
combined with structured filters.
"""

__version__ = "0.1.0"
