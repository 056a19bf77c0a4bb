"""
Event submission and filtered semantic search endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from event_search.api.auth import verify_api_key
from event_search.api.dependencies import get_ingestion_queue, get_search_service
from event_search.api.models import EnqueueResponse, ErrorResponse
from event_search.ingestion.queue import IngestionQueue, QueueClosedError
from event_search.ingestion.schemas import ContentItem
from event_search.vectorstore.manager import SemanticSearchService
from event_search.vectorstore.schemas import SearchRequest, SearchResponse

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/events",
    response_model=EnqueueResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        503: {"model": ErrorResponse, "description": "Ingestion stopped"},
    },
    summary="Submit an event for indexing",
    description="""
    Queue one event for asynchronous embedding and storage.

    The request returns as soon as the event is queued. Events whose id
    is already stored are accepted and skipped by the processor.
    """,
)
async def post_event(
    item: ContentItem,
    api_key: str = Depends(verify_api_key),
    queue: IngestionQueue = Depends(get_ingestion_queue),
) -> EnqueueResponse:
    try:
        queue.enqueue(item)
    except QueueClosedError as e:
        logger.error("Failed to queue event", item_id=item.id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    logger.debug("Event queued", item_id=item.id, queue_depth=queue.depth)
    return EnqueueResponse(id=item.id, queue_depth=queue.depth)


@router.get(
    "/events",
    response_model=SearchResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Search error"},
    },
    summary="Search events with filters",
    description="""
    Semantic search with optional filters, combined with AND:
    - `author`: exact author match
    - `categories`: category filter (only the first value is applied)
    - `min_created_at` / `max_created_at`: inclusive time range (unix seconds)

    Ids are ordered by descending relevance. Hits below the backend's
    relevance threshold are never returned.
    """,
)
async def get_events(
    search: str | None = Query(default=None, description="Text query"),
    author: str | None = Query(default=None, description="Exact author filter"),
    limit: int | None = Query(default=None, ge=1, le=10000, description="Maximum ids"),
    categories: list[int] | None = Query(default=None, description="Category filter"),
    min_created_at: int | None = Query(default=None, description="Inclusive lower time bound"),
    max_created_at: int | None = Query(default=None, description="Inclusive upper time bound"),
    api_key: str = Depends(verify_api_key),
    service: SemanticSearchService = Depends(get_search_service),
) -> SearchResponse:
    try:
        request = SearchRequest(
            query_text=search,
            author=author,
            limit=limit,
            categories=categories,
            min_created_at=min_created_at,
            max_created_at=max_created_at,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    try:
        return await service.semantic_search(request)
    except Exception as e:
        logger.error("Event search failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Search failed: {e}",
        )
