"""
Structured logging for the API, the ingestion processor and the CLI.

Every module logs through `structlog.get_logger(__name__)`. Output is
JSON in production and colored console lines elsewhere. Fields bound
with `log_context` (request_id in the API, item_id in the processor)
are attached to every event logged inside the block, across awaits.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor

from event_search.config.settings import get_settings

# Third-party loggers that are chatty at INFO: HTTP clients used for
# embeddings and Qdrant, plus the vector store clients themselves.
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "lancedb", "qdrant_client")


def _renderer(production: bool) -> list[Processor]:
    if production:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name overriding LOG_LEVEL (the CLI passes DEBUG
            for --debug)
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        *_renderer(settings.is_production),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """
    Bind fields to every log event emitted inside the block.

    Fields bound by an enclosing block are restored on exit, so nested
    contexts (a request that processes an item) compose.

    Usage:
        with log_context(request_id=request_id):
            logger.info("HTTP request")
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield
