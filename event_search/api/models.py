"""
Request and response models for the event-search API.

Search request/response shapes live in event_search.vectorstore.schemas
and are reused as-is.
"""

from typing import Any

from pydantic import BaseModel, Field


class EnqueueResponse(BaseModel):
    """Response model for an accepted event."""

    status: str = Field(default="queued", description="Always 'queued' on success")
    id: str = Field(..., description="Id of the queued item")
    queue_depth: int = Field(..., description="Items waiting after this one was added")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="healthy, degraded or unhealthy")
    service: str = Field(default="event-search", description="Service name")
    version: str = Field(..., description="Service version")
    backend: str | None = Field(default=None, description="Active vector store backend")
    timestamp: str = Field(..., description="Check time (ISO 8601, UTC)")
    store: dict[str, Any] = Field(default_factory=dict, description="Vector store status")
    ingestion: dict[str, Any] = Field(default_factory=dict, description="Ingestion queue status")


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(..., description="Error message")
    error_type: str | None = Field(default=None, description="Error type")
