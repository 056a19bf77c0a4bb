"""
Prometheus metrics for monitoring the semantic search pipeline.

Defines and exposes metrics for:
- Item ingestion through the queue
- Embedding, store and search latency
- Soft-success reclassifications (duplicates, missing collections, deferred indexes)
- Queue depth

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from event_search.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the event-search pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_item_processed(success=True)
        metrics.record_store_latency("insert_one", 0.05)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Ingestion
        self.items_enqueued = Counter(
            "event_search_items_enqueued_total",
            "Total number of items accepted by the ingestion queue",
        )

        self.items_processed = Counter(
            "event_search_items_processed_total",
            "Total number of items handled by the ingestion processor",
            ["status"],  # success, error
        )

        self.ingestion_queue_depth = Gauge(
            "event_search_ingestion_queue_depth",
            "Number of items waiting in the ingestion queue",
        )

        # Reclassified backend failures
        self.soft_successes = Counter(
            "event_search_soft_successes_total",
            "Backend failures reclassified as successful no-ops",
            ["kind"],  # duplicate, missing_store, no_data, index_deferred, index_exists
        )

        # Embedding
        self.embedding_latency = Histogram(
            "event_search_embedding_latency_seconds",
            "Time to generate one embedding",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.embedding_errors = Counter(
            "event_search_embedding_errors_total",
            "Total embedding failures",
        )

        self.embedding_cache_hits = Counter(
            "event_search_embedding_cache_hits_total",
            "Total embedding cache hits",
        )

        self.embedding_cache_misses = Counter(
            "event_search_embedding_cache_misses_total",
            "Total embedding cache misses",
        )

        # Vector store
        self.store_latency = Histogram(
            "event_search_store_latency_seconds",
            "Time spent in vector store operations",
            ["operation"],  # insert_one, insert_many, search, create_index
            buckets=LATENCY_BUCKETS,
        )

        # Search
        self.searches = Counter(
            "event_search_searches_total",
            "Total semantic searches",
            ["outcome"],  # hit, empty, error
        )

        self.search_results = Histogram(
            "event_search_search_results",
            "Number of ids returned per search",
            buckets=(0, 1, 5, 10, 25, 50, 100, 200),
        )

        self.search_latency = Histogram(
            "event_search_search_latency_seconds",
            "End-to-end semantic search time, embedding included",
            buckets=LATENCY_BUCKETS,
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_item_processed(self, success: bool) -> None:
        """Record one item handled by the ingestion processor."""
        self.items_processed.labels(status="success" if success else "error").inc()

    def record_soft_success(self, kind: str) -> None:
        """Record a backend failure that was reclassified as success."""
        self.soft_successes.labels(kind=kind).inc()

    def record_embedding_cache(self, hit: bool) -> None:
        """
        Record embedding cache hit or miss.

        Args:
            hit: True for cache hit, False for miss
        """
        if hit:
            self.embedding_cache_hits.inc()
        else:
            self.embedding_cache_misses.inc()

    def record_store_latency(self, operation: str, latency: float) -> None:
        """
        Record vector store operation latency.

        Args:
            operation: Store operation name
            latency: Latency in seconds
        """
        self.store_latency.labels(operation=operation).observe(latency)

    def record_search(self, result_count: int | None) -> None:
        """
        Record a semantic search outcome.

        Args:
            result_count: Number of ids returned, or None if the search failed
        """
        if result_count is None:
            self.searches.labels(outcome="error").inc()
            return
        self.searches.labels(outcome="hit" if result_count else "empty").inc()
        self.search_results.observe(result_count)

    def record_search_latency(self, latency: float) -> None:
        """Record end-to-end search latency in seconds."""
        self.search_latency.observe(latency)

    def set_queue_depth(self, depth: int) -> None:
        """Set ingestion queue depth metric."""
        self.ingestion_queue_depth.set(depth)


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
