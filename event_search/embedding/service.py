"""
Embedding generation through an OpenAI-compatible HTTP API.

Provides async embedding generation with:
- Exponential backoff with jitter on transient failures
- Redis caching keyed by model and content hash
- Latency, error and cache metrics
"""

import asyncio
import hashlib
import json
import random
import time
from typing import Any

import httpx
import redis.asyncio as redis
import structlog

from event_search.embedding.config import EmbeddingConfig
from event_search.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


class EmbeddingError(Exception):
    """Raised when an embedding cannot be produced."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmbeddingService:
    """
    Client for an OpenAI-compatible embeddings endpoint.

    The HTTP client is created lazily on first use so services that
    never embed do not open connections.

    Usage:
        service = EmbeddingService()
        embedding = await service.generate_embedding("bitcoin halving")
        await service.close()
    """

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        redis_client: redis.Redis | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the embedding service.

        Args:
            config: Embedding configuration (uses defaults if None)
            redis_client: Redis client for caching (optional)
            http_client: Pre-built HTTP client (created on first use if None)
        """
        self._config = config or EmbeddingConfig()
        self._redis = redis_client
        self._client = http_client
        self._owns_client = http_client is None
        self._metrics = get_metrics()

        self._requests = 0
        self._cache_hits = 0
        self._errors = 0

        logger.info(
            "EmbeddingService created",
            base_url=self._config.base_url,
            model=self._config.model_name,
            cache_enabled=self._config.cache_enabled,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._config.api_key is not None:
                headers["Authorization"] = f"Bearer {self._config.api_key.get_secret_value()}"
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url.rstrip("/"),
                headers=headers,
                timeout=self._config.timeout,
            )
        return self._client

    def _compute_content_hash(self, text: str) -> str:
        """Compute SHA256 hash of text for cache key."""
        return hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]

    def _make_cache_key(self, text: str) -> str:
        """Create cache key with model prefix to avoid collisions."""
        return f"{self._config.cache_key_prefix}{self._config.model_name}:{self._compute_content_hash(text)}"

    async def _get_cached_embedding(self, text: str) -> list[float] | None:
        """Try to retrieve embedding from cache."""
        if not self._config.cache_enabled or not self._redis:
            return None

        try:
            cached = await self._redis.get(self._make_cache_key(text))
            if cached:
                return json.loads(cached)
        except Exception as e:
            logger.warning("Cache retrieval failed", error=str(e))

        return None

    async def _cache_embedding(self, text: str, embedding: list[float]) -> None:
        """Store embedding in cache."""
        if not self._config.cache_enabled or not self._redis:
            return

        try:
            await self._redis.setex(
                self._make_cache_key(text),
                self._config.cache_ttl_seconds,
                json.dumps(embedding),
            )
        except Exception as e:
            logger.warning("Cache storage failed", error=str(e))

    def calculate_backoff(self, attempt: int) -> float:
        """
        Backoff before retry number `attempt` (0-indexed).

        Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, 0.1))
        """
        delay = min(self._config.base_delay * (2**attempt), self._config.max_backoff_seconds)
        return delay + delay * 0.1 * random.random()

    async def _request(self, text: str) -> list[float]:
        """POST one embedding request, retrying transient failures."""
        client = self._get_client()
        body = {"model": self._config.model_name, "input": text}

        for attempt in range(self._config.max_retries + 1):
            try:
                response = await client.post("/embeddings", json=body)
            except RETRYABLE_EXCEPTIONS as e:
                error = EmbeddingError(f"Embedding request failed: {type(e).__name__}: {e}")
            else:
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    if response.is_error:
                        raise EmbeddingError(
                            f"Embedding API returned {response.status_code}: {response.text[:200]}",
                            status_code=response.status_code,
                        )
                    return self._parse_response(response)
                error = EmbeddingError(
                    f"Embedding API returned {response.status_code}",
                    status_code=response.status_code,
                )

            if attempt >= self._config.max_retries:
                raise error

            delay = self.calculate_backoff(attempt)
            logger.warning(
                "Retrying embedding request",
                attempt=attempt + 1,
                max_retries=self._config.max_retries,
                delay=round(delay, 2),
                error=str(error),
            )
            await asyncio.sleep(delay)

        # Should not reach here, but just in case
        raise EmbeddingError("Embedding request failed after retries")

    def _parse_response(self, response: httpx.Response) -> list[float]:
        try:
            data = response.json()["data"]
            embedding = data[0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingError(f"Malformed embedding response: {e}") from e

        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingError("Embedding response contained no vector")

        return [float(x) for x in embedding]

    async def generate_embedding(self, text: str) -> list[float]:
        """
        Generate an embedding for text.

        Args:
            text: Input text (may be empty)

        Returns:
            Embedding vector

        Raises:
            EmbeddingError: If the API fails or returns an unusable response
        """
        self._requests += 1

        cached = await self._get_cached_embedding(text)
        if cached is not None:
            self._cache_hits += 1
            self._metrics.record_embedding_cache(hit=True)
            return cached
        if self._config.cache_enabled and self._redis:
            self._metrics.record_embedding_cache(hit=False)

        start = time.perf_counter()
        try:
            embedding = await self._request(text)
        except EmbeddingError:
            self._errors += 1
            self._metrics.embedding_errors.inc()
            raise

        self._metrics.embedding_latency.observe(time.perf_counter() - start)
        await self._cache_embedding(text, embedding)
        return embedding

    async def close(self) -> None:
        """Close the HTTP client if this service created it."""
        # Redis client is managed externally
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
        logger.info("EmbeddingService closed")

    def get_stats(self) -> dict[str, Any]:
        """Get service statistics."""
        return {
            "base_url": self._config.base_url,
            "model": self._config.model_name,
            "dimension": self._config.dimension,
            "cache_enabled": self._config.cache_enabled,
            "requests": self._requests,
            "cache_hits": self._cache_hits,
            "errors": self._errors,
        }

    async def is_cache_available(self) -> bool:
        """Check if Redis cache is available and responding."""
        if not self._config.cache_enabled or not self._redis:
            return False
        try:
            await self._redis.ping()
            return True
        except Exception:
            return False
