"""Pytest fixtures for embedding tests."""

import json
from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr

from event_search.embedding.config import EmbeddingConfig



@pytest.fixture
def embedding_config() -> EmbeddingConfig:
    """Config pointing at a fake endpoint with instant retries."""
    return EmbeddingConfig(
        base_url="http://embed.test/v1",
        api_key=SecretStr("sk-test"),
        model_name="bge-m3:latest",
        dimension=4,
        max_retries=2,
        base_delay=0.0,
        max_backoff_seconds=0.0,
    )


@pytest.fixture
def embedding_payload():
    """Factory for OpenAI-style embedding responses."""

    def _payload(vector: list[float]) -> dict:
        return {
            "object": "list",
            "data": [{"object": "embedding", "index": 0, "embedding": vector}],
            "model": "bge-m3:latest",
        }

    return _payload


@pytest.fixture
def mock_redis():
    """Mock Redis client with an empty cache."""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def cached_vector(mock_redis):
    """Populate the mock cache with one vector and return it."""
    vector = [0.5, 0.5, 0.5, 0.5]
    mock_redis.get.return_value = json.dumps(vector)
    return vector
