"""HTTP API for event ingestion and semantic search."""

from event_search.api.app import create_app

__all__ = ["create_app"]
