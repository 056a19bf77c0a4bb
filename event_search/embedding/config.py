"""
Embedding service configuration.

Provides Pydantic settings for the HTTP embedding client including
endpoint, model, retry policy and Redis caching settings.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingConfig(BaseSettings):
    """
    Configuration for the embedding client.

    Settings can be overridden via environment variables prefixed with EMBEDDING_.
    The endpoint must speak the OpenAI-compatible /embeddings API
    (Ollama, vLLM, text-embeddings-inference, OpenAI itself).
    """

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Endpoint
    base_url: str = Field(
        default="http://localhost:11434/v1",
        description="Base URL of the OpenAI-compatible embeddings API",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token for the embeddings API (optional)",
    )
    model_name: str = Field(
        default="bge-m3:latest",
        description="Embedding model requested from the API",
    )
    dimension: int = Field(
        default=1024,
        ge=1,
        description="Expected embedding vector dimension",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds",
    )

    # Retry policy
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for connection errors, 429 and 5xx responses",
    )
    base_delay: float = Field(
        default=0.5,
        ge=0,
        description="Initial backoff delay in seconds",
    )
    max_backoff_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Upper bound for a single backoff delay",
    )

    # Caching configuration
    cache_enabled: bool = Field(
        default=False,
        description="Enable Redis caching for embeddings",
    )
    cache_ttl_hours: int = Field(
        default=168,
        ge=1,
        description="Cache TTL in hours (default: 1 week)",
    )
    cache_key_prefix: str = Field(
        default="emb:",
        description="Redis key prefix for cached embeddings",
    )

    @property
    def cache_ttl_seconds(self) -> int:
        """Get cache TTL in seconds."""
        return self.cache_ttl_hours * 3600
