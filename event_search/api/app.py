"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_search import __version__
from event_search.api.dependencies import (
    cleanup_dependencies,
    get_ingestion_queue,
    get_search_service,
)
from event_search.api.routes import events, health, search
from event_search.config.settings import get_settings
from event_search.observability.logging import log_context

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Connects the vector store, optionally builds its index and starts the
    ingestion processor. On shutdown the queue is drained before the store
    is closed.
    """
    logger.info("Event search API starting up")
    settings = get_settings()

    service = await get_search_service()
    if settings.create_index_on_startup:
        try:
            await service.create_index()
        except Exception as e:
            logger.warning("Index creation at startup failed", error=str(e))

    await get_ingestion_queue()

    yield

    logger.info("Event search API shutting down")
    await cleanup_dependencies()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service health checks"},
        {"name": "events", "description": "Event submission and filtered search"},
        {"name": "search", "description": "Semantic similarity search"},
    ]

    app = FastAPI(
        title="Event Search API",
        description="""
Semantic search over short social-network events.

Events are queued on `POST /events`, embedded in the background and
stored in the configured vector store (LanceDB or Qdrant).

## Authentication

Requires `X-API-KEY` header for all requests except `/health` when
`API_KEYS` is set.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )

    # CORS origins from CORS_ORIGINS env var, comma-separated
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging and correlation ID middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        start_time = time.perf_counter()

        with log_context(request_id=request_id):
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(events.router, tags=["events"])
    app.include_router(search.router, tags=["search"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Event Search API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
