"""
Plain semantic search endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from event_search.api.auth import verify_api_key
from event_search.api.dependencies import get_search_service
from event_search.api.models import ErrorResponse
from event_search.vectorstore.manager import SemanticSearchService
from event_search.vectorstore.schemas import (
    ScoredSearchResponse,
    SearchRequest,
    SearchResponse,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get(
    "/search",
    response_model=SearchResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        500: {"model": ErrorResponse, "description": "Search error"},
    },
    summary="Semantic search",
)
async def semantic_search(
    query: str = Query(..., description="Text query"),
    limit: int | None = Query(default=None, ge=1, le=10000, description="Maximum ids"),
    api_key: str = Depends(verify_api_key),
    service: SemanticSearchService = Depends(get_search_service),
) -> SearchResponse:
    """Search by text alone, without filters."""
    try:
        return await service.semantic_search(SearchRequest(query_text=query, limit=limit))
    except Exception as e:
        logger.error("Semantic search failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Search failed: {e}",
        )


@router.post(
    "/search/scored",
    response_model=ScoredSearchResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Search error"},
    },
    summary="Semantic search with relevance scores",
    description="""
    Same ranking as `GET /events`, but each hit carries its normalized
    relevance (0.0-1.0) and the raw backend score (distance for LanceDB,
    cosine similarity for Qdrant).
    """,
)
async def scored_search(
    body: SearchRequest,
    api_key: str = Depends(verify_api_key),
    service: SemanticSearchService = Depends(get_search_service),
) -> ScoredSearchResponse:
    try:
        return await service.semantic_search_with_scores(body)
    except Exception as e:
        logger.error("Scored search failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Search failed: {e}",
        )
