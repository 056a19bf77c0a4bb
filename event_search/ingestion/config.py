"""
Ingestion pipeline configuration.

Uses Pydantic BaseSettings for environment variable support.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IngestionConfig(BaseSettings):
    """
    Configuration for the in-process ingestion queue and processor.

    Settings can be overridden via environment variables prefixed with INGESTION_.
    """

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    shutdown_timeout: float = Field(
        default=30.0,
        ge=0,
        description="Seconds to wait for the queue to drain at shutdown",
    )
    depth_warning_threshold: int = Field(
        default=10_000,
        ge=1,
        description="Queue depth above which enqueue logs a warning",
    )
