"""Pytest fixtures for vectorstore backend tests."""

from unittest.mock import AsyncMock, MagicMock

import pyarrow as pa
import pytest

from event_search.vectorstore.base import EmbeddedItem


@pytest.fixture
def embedded_items(item_factory) -> list[EmbeddedItem]:
    """Three embedded items with distinct vectors."""
    return [
        EmbeddedItem.from_content(item_factory(f"e{i}", f"text {i}"), [float(i)] * 4, dimension=4)
        for i in range(1, 4)
    ]


def chain_mock() -> MagicMock:
    """A builder mock whose chained calls return itself."""
    builder = MagicMock()
    for method in (
        "where",
        "select",
        "limit",
        "nearest_to",
        "column",
        "distance_type",
        "when_not_matched_insert_all",
    ):
        getattr(builder, method).return_value = builder
    builder.to_arrow = AsyncMock(return_value=pa.table({"id": pa.array([], pa.utf8())}))
    builder.execute = AsyncMock()
    return builder


@pytest.fixture
def lance_query() -> MagicMock:
    """Chained query builder returned by table.query()."""
    return chain_mock()


@pytest.fixture
def lance_merge() -> MagicMock:
    """Merge-insert builder returned by table.merge_insert()."""
    return chain_mock()


@pytest.fixture
def lance_table(lance_query, lance_merge) -> MagicMock:
    """Mock LanceDB AsyncTable."""
    table = MagicMock()
    table.query.return_value = lance_query
    table.merge_insert.return_value = lance_merge
    table.count_rows = AsyncMock(return_value=0)
    table.list_indices = AsyncMock(return_value=[])
    table.create_index = AsyncMock()
    return table


@pytest.fixture
def qdrant_client() -> AsyncMock:
    """Mock AsyncQdrantClient."""
    client = AsyncMock()
    client.collection_exists = AsyncMock(return_value=True)
    client.retrieve = AsyncMock(return_value=[])
    client.upsert = AsyncMock()
    client.query_points = AsyncMock(return_value=MagicMock(points=[]))
    client.count = AsyncMock(return_value=MagicMock(count=0))
    return client
