"""
Configuration for vector store operations.

Uses Pydantic BaseSettings for environment variable support.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorStoreConfig(BaseSettings):
    """
    Configuration for VectorStore backends and SemanticSearchService.

    All settings can be overridden via environment variables with
    VECTORSTORE_ prefix (e.g., VECTORSTORE_BACKEND=qdrant).
    Relevance thresholds live here rather than in code so tests can
    exercise boundary values.
    """

    model_config = SettingsConfigDict(
        env_prefix="VECTORSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    backend: Literal["lancedb", "qdrant"] = Field(
        default="lancedb",
        description="Vector store backend selected at construction time",
    )
    dimension: int = Field(
        default=1024,
        ge=1,
        le=65536,
        description="Embedding dimension, fixed for the lifetime of a store",
    )

    # LanceDB (embedded, local)
    lancedb_uri: str = Field(
        default="data/lancedb",
        description="LanceDB database directory or URI",
    )
    lancedb_table: str = Field(
        default="events",
        description="LanceDB table name",
    )
    lancedb_distance_type: Literal["l2", "cosine", "dot"] = Field(
        default="l2",
        description="Distance metric used for LanceDB queries and index",
    )
    lancedb_min_relevance: float = Field(
        default=0.50,
        ge=0.0,
        le=1.0,
        description="Minimum relevance (1 / (1 + distance)) for LanceDB hits",
    )
    lancedb_default_limit: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Default result limit for LanceDB searches",
    )
    lancedb_min_index_rows: int = Field(
        default=256,
        ge=1,
        description="Rows required before LanceDB can train a vector index",
    )

    # Qdrant (remote service)
    qdrant_url: str = Field(
        default="http://localhost:6334",
        description="Qdrant server URL",
    )
    qdrant_api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional)",
    )
    qdrant_prefer_grpc: bool = Field(
        default=True,
        description="Use gRPC transport for Qdrant",
    )
    qdrant_collection: str = Field(
        default="nostr_events",
        description="Qdrant collection name",
    )
    qdrant_quantization: bool = Field(
        default=True,
        description="Enable scalar INT8 quantization when creating the collection",
    )
    qdrant_min_relevance: float = Field(
        default=0.40,
        ge=0.0,
        le=1.0,
        description="Minimum cosine similarity for Qdrant hits",
    )
    qdrant_default_limit: int = Field(
        default=200,
        ge=1,
        le=10000,
        description="Default result limit for Qdrant searches",
    )

    # Shared search behavior
    candidate_limit: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Candidates fetched from the backend before relevance filtering",
    )

    # Batch processing
    insert_batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum items per backend insert call",
    )
