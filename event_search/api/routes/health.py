"""
Health check endpoint.
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends

from event_search import __version__
from event_search.api.dependencies import get_ingestion_processor, get_search_service
from event_search.api.models import HealthResponse
from event_search.ingestion.worker import IngestionProcessor
from event_search.vectorstore.manager import SemanticSearchService

router = APIRouter()
logger = structlog.get_logger(__name__)


def _ingestion_status(processor: IngestionProcessor | None) -> dict:
    if processor is None:
        return {"running": False}
    return {
        "running": processor.is_running,
        "state": processor.state.value,
        "processed": processor.processed,
        "failed": processor.failed,
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    service: SemanticSearchService = Depends(get_search_service),
    processor: IngestionProcessor | None = Depends(get_ingestion_processor),
) -> HealthResponse:
    """
    Report vector store reachability and ingestion processor state.

    Status is "healthy" when the store answers and the processor (if
    started) is running, "degraded" when the processor has stopped, and
    "unhealthy" when the store does not answer.
    """
    store = await service.health_check()
    ingestion = _ingestion_status(processor)

    if not store.get("healthy"):
        status = "unhealthy"
        logger.warning("Vector store unhealthy", error=store.get("error"))
    elif processor is not None and not processor.is_running:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        version=__version__,
        backend=store.get("backend"),
        timestamp=datetime.now(timezone.utc).isoformat(),
        store=store,
        ingestion=ingestion,
    )
