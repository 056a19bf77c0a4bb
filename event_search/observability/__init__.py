"""Observability layer - logging and metrics."""

from event_search.observability.logging import log_context, setup_logging
from event_search.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "log_context", "MetricsCollector", "get_metrics"]
