"""
Command-line interface for event-search.

Provides commands to run the HTTP API, build the vector index, search,
bulk-load events and check backend health.

Usage:
    event-search serve               # Run the HTTP API
    event-search create-index        # Build the vector store index
    event-search search "bitcoin"    # Semantic search
    event-search ingest events.jsonl # Embed and store JSON-lines events
    event-search health              # Check vector store health
"""

import asyncio
import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError

from event_search.config.settings import get_settings
from event_search.observability.logging import setup_logging
from event_search.observability.metrics import get_metrics

if TYPE_CHECKING:
    from event_search.vectorstore.manager import SemanticSearchService


@asynccontextmanager
async def open_search_service() -> AsyncIterator["SemanticSearchService"]:
    """Connect the configured store and embedder, closing both on exit."""
    from event_search.embedding.service import EmbeddingService
    from event_search.vectorstore.backends import create_vector_store
    from event_search.vectorstore.manager import SemanticSearchService

    store = create_vector_store()
    await store.connect()
    service = SemanticSearchService(store, EmbeddingService())
    try:
        yield service
    finally:
        await service.close()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Event Search - semantic search over social-network events."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the HTTP API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "event_search.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("create-index")
def create_index() -> None:
    """Build the vector store index (deferred if there is too little data)."""

    async def run():
        async with open_search_service() as service:
            await service.create_index()
            click.echo(f"Index ready on {service.store.backend.value}")

    asyncio.run(run())


@main.command()
@click.argument("query")
@click.option("--limit", default=None, type=int, help="Maximum results to return")
@click.option("--author", default=None, help="Filter by author")
@click.option("--category", multiple=True, type=int, help="Filter by category (first one is used)")
@click.option("--since", "min_created_at", default=None, type=int, help="Minimum created_at (unix seconds)")
@click.option("--until", "max_created_at", default=None, type=int, help="Maximum created_at (unix seconds)")
@click.option("--scores", is_flag=True, help="Show relevance scores")
def search(
    query: str,
    limit: int | None,
    author: str | None,
    category: tuple[int, ...],
    min_created_at: int | None,
    max_created_at: int | None,
    scores: bool,
) -> None:
    """Search for semantically similar events.

    Example:
        event-search search "bitcoin price" --limit 5
        event-search search "zaps" --author npub1... --category 1
    """
    from event_search.vectorstore.schemas import SearchRequest

    try:
        request = SearchRequest(
            query_text=query,
            limit=limit,
            author=author,
            categories=list(category) or None,
            min_created_at=min_created_at,
            max_created_at=max_created_at,
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))

    async def run():
        async with open_search_service() as service:
            response = await service.semantic_search_with_scores(request)

        click.echo(f"\nSearching for: {query}")
        click.echo("-" * 60)

        if not response.results:
            click.echo("No results found.")
            return

        for rank, result in enumerate(response.results, start=1):
            if scores:
                click.echo(
                    f"{rank:3d}. {result.event_id}  "
                    f"relevance={result.relevance_score:.4f} raw={result.raw_score:.4f}"
                )
            else:
                click.echo(f"{rank:3d}. {result.event_id}")

        click.echo("-" * 60)
        click.echo(f"Found {response.total_found} results")

    asyncio.run(run())


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--batch-size", default=100, type=click.IntRange(min=1), help="Events per store batch"
)
def ingest(path: str, batch_size: int) -> None:
    """Embed and store events from a JSON-lines file.

    Each line is one event object. Invalid lines are reported and skipped;
    events whose id is already stored are skipped by the store.
    """
    from event_search.ingestion.schemas import ContentItem

    items: list[ContentItem] = []
    invalid = 0

    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                items.append(ContentItem.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                invalid += 1
                click.echo(click.style(f"  line {line_no}: skipped ({e.__class__.__name__})", fg="yellow"))

    async def run():
        submitted = 0
        async with open_search_service() as service:
            for start in range(0, len(items), batch_size):
                submitted += await service.embed_and_store_events(items[start:start + batch_size])
        return submitted

    submitted = asyncio.run(run()) if items else 0

    click.echo(f"Read {len(items)} events ({invalid} invalid lines)")
    click.echo(f"Submitted {submitted} events to the store")
    if submitted < len(items):
        click.echo(
            click.style(f"{len(items) - submitted} events dropped (embedding failed)", fg="yellow")
        )


@main.command()
def health() -> None:
    """Check vector store health."""

    from event_search.vectorstore.config import VectorStoreConfig

    async def check():
        try:
            async with open_search_service() as service:
                status = await service.health_check()
        except Exception as e:
            status = {"backend": VectorStoreConfig().backend, "healthy": False, "error": str(e)}

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        healthy = bool(status.get("healthy"))
        icon = "✓" if healthy else "✗"
        color = "green" if healthy else "red"
        click.echo(click.style(f"  {icon} vector store ({status.get('backend')}): {healthy}", fg=color))
        if healthy:
            click.echo(f"    items: {status.get('count')}")
        else:
            click.echo(f"    error: {status.get('error')}")

        click.echo("-" * 40)
        return healthy

    healthy = asyncio.run(check())
    sys.exit(0 if healthy else 1)


if __name__ == "__main__":
    main()
