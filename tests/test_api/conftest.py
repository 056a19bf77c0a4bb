"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from event_search.api.app import create_app
from event_search.api.dependencies import (
    get_ingestion_processor,
    get_ingestion_queue,
    get_search_service,
)
from event_search.config.settings import get_settings
from event_search.ingestion.queue import IngestionQueue
from event_search.ingestion.worker import ProcessorState
from event_search.vectorstore.manager import SemanticSearchService
from event_search.vectorstore.schemas import (
    ScoredResult,
    ScoredSearchResponse,
    SearchResponse,
)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Run every API test without API keys unless a test sets them."""
    monkeypatch.delenv("API_KEYS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_search_service():
    """Mock SemanticSearchService."""
    service = AsyncMock(spec=SemanticSearchService)
    service.semantic_search = AsyncMock(
        return_value=SearchResponse(event_ids=["e1", "e3"], total_found=2)
    )
    service.semantic_search_with_scores = AsyncMock(
        return_value=ScoredSearchResponse(
            results=[ScoredResult(event_id="e1", relevance_score=0.87, raw_score=0.15)],
            total_found=1,
        )
    )
    service.health_check = AsyncMock(
        return_value={"backend": "lancedb", "healthy": True, "count": 42}
    )
    return service


@pytest.fixture
def ingestion_channel():
    """Real queue and its receiver."""
    return IngestionQueue.create()


@pytest.fixture
def ingestion_queue(ingestion_channel):
    return ingestion_channel[0]


@pytest.fixture
def ingestion_receiver(ingestion_channel):
    return ingestion_channel[1]


@pytest.fixture
def mock_processor():
    """Mock running IngestionProcessor."""
    processor = MagicMock()
    processor.is_running = True
    processor.state = ProcessorState.RECEIVING
    processor.processed = 10
    processor.failed = 1
    return processor


@pytest.fixture
def app(mock_search_service, ingestion_queue, mock_processor):
    """App with service dependencies overridden."""
    app = create_app()
    app.dependency_overrides[get_search_service] = lambda: mock_search_service
    app.dependency_overrides[get_ingestion_queue] = lambda: ingestion_queue
    app.dependency_overrides[get_ingestion_processor] = lambda: mock_processor
    return app


@pytest.fixture
def client(app):
    """Test client without running the lifespan."""
    return TestClient(app)
