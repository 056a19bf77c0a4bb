"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the event-search application.

    All settings can be overridden via environment variables.
    Prefix is not used to allow standard env var names (e.g., REDIS_URL).
    Backend-specific settings live in VectorStoreConfig (VECTORSTORE_ prefix)
    and EmbeddingConfig (EMBEDDING_ prefix).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=3009, ge=1, le=65535)
    api_keys: str | None = None  # Comma-separated; unset = dev mode
    cors_origins: str = "*"

    # Redis (embedding cache only)
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")

    # Index lifecycle
    create_index_on_startup: bool = True

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
