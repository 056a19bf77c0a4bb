"""Embedding generation through an OpenAI-compatible HTTP API."""

from event_search.embedding.config import EmbeddingConfig
from event_search.embedding.service import EmbeddingError, EmbeddingService

__all__ = ["EmbeddingConfig", "EmbeddingError", "EmbeddingService"]
