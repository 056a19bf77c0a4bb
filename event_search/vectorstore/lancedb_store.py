"""
LanceDB implementation of the VectorStore interface.

Embedded, local store backed by a Lance table. Searches return the
`_distance` column (lower is closer), so relevance is derived from
distance by the service layer.
"""

import asyncio
import time
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import lancedb
import pyarrow as pa
import structlog
from lancedb.index import IvfPq

from event_search.observability.metrics import get_metrics
from event_search.vectorstore.base import (
    EmbeddedItem,
    ScoreKind,
    VectorBackend,
    VectorSearchHit,
    VectorStore,
    split_repeated_ids,
)
from event_search.vectorstore.config import VectorStoreConfig
from event_search.vectorstore.errors import (
    DuplicateItemError,
    ErrorVocabulary,
    VectorStoreError,
)

logger = structlog.get_logger(__name__)

VECTOR_COLUMN = "embedding"


def _quote(value: str) -> str:
    """Render a SQL string literal for a Lance filter expression."""
    return "'" + value.replace("'", "''") + "'"


def build_where_clause(
    author: str | None = None,
    category: int | None = None,
    min_created_at: int | None = None,
    max_created_at: int | None = None,
) -> str | None:
    """
    Build an AND-joined Lance SQL predicate from the supplied filters.

    Returns:
        Predicate string, or None when no filter is set
    """
    clauses: list[str] = []

    if author is not None:
        clauses.append(f"author = {_quote(author)}")
    if category is not None:
        clauses.append(f"category = {int(category)}")
    if min_created_at is not None:
        clauses.append(f"created_at >= {int(min_created_at)}")
    if max_created_at is not None:
        clauses.append(f"created_at <= {int(max_created_at)}")

    return " AND ".join(clauses) if clauses else None


class LanceDBStore(VectorStore):
    """
    LanceDB-based vector store implementation.

    Features:
    - Fixed-size-list vector column sized to the configured dimension
    - Idempotent inserts via merge_insert on the id column
    - SQL prefilters combined with AND
    - IVF-PQ index once enough rows exist to train it

    Lance has no unique key and concurrent appends never conflict, so
    writers of the same id are serialized by a per-id lock around the
    existence check and the write. Writers of different ids do not wait
    on each other.
    """

    backend = VectorBackend.LANCEDB
    score_kind = ScoreKind.DISTANCE
    error_vocabulary = ErrorVocabulary(
        missing_store=(("table", "not found"), ("table", "does not exist")),
        no_data=(("no data",), ("table", "is empty")),
        insufficient_rows=(("not enough rows to train",), ("kmeans",)),
        already_indexed=(("index already exists",), ("already indexed",)),
    )

    def __init__(self, config: VectorStoreConfig | None = None):
        """
        Initialize LanceDB store.

        Args:
            config: Optional configuration (uri, table, thresholds)
        """
        super().__init__(config)
        self._uri = self._config.lancedb_uri
        self._table_name = self._config.lancedb_table
        self._connection: Any = None
        self._table: Any = None
        self._metrics = get_metrics()

        # Locks for ids with a write in flight, dropped when unused
        self._id_locks: dict[str, asyncio.Lock] = {}
        self._id_users: Counter[str] = Counter()

    @property
    def min_relevance(self) -> float:
        return self._config.lancedb_min_relevance

    @property
    def default_limit(self) -> int:
        return self._config.lancedb_default_limit

    @property
    def table(self) -> Any:
        """Get the open table, raising if not connected."""
        if self._table is None:
            raise RuntimeError("Not connected to LanceDB. Call connect() first.")
        return self._table

    def schema(self) -> pa.Schema:
        """Arrow schema of the persisted table."""
        return pa.schema(
            [
                pa.field("id", pa.utf8(), nullable=False),
                pa.field("author", pa.utf8(), nullable=False),
                pa.field("created_at", pa.int64(), nullable=False),
                pa.field("category", pa.int64(), nullable=False),
                pa.field("tags", pa.utf8(), nullable=False),
                pa.field(
                    VECTOR_COLUMN,
                    pa.list_(pa.float32(), self.dimension),
                    nullable=False,
                ),
            ]
        )

    async def connect(self) -> None:
        """Open the database and create the table if it does not exist."""
        self._connection = await lancedb.connect_async(self._uri)

        if await self._table_exists():
            self._table = await self._connection.open_table(self._table_name)
        else:
            self._table = await self._connection.create_table(
                self._table_name,
                schema=self.schema(),
                exist_ok=True,
            )
            logger.info("Created LanceDB table", table=self._table_name, uri=self._uri)

        logger.info(
            "Connected to LanceDB",
            uri=self._uri,
            table=self._table_name,
            dimension=self.dimension,
        )

    async def _table_exists(self) -> bool:
        """Page through the database's tables looking for ours."""
        page_token = None
        while True:
            response = await self._connection.list_tables(page_token=page_token)
            if self._table_name in response.tables:
                return True
            page_token = response.page_token
            if not page_token:
                return False

    async def close(self) -> None:
        """Close the table and connection."""
        if self._table is not None:
            self._table.close()
            self._table = None
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("LanceDB connection closed", table=self._table_name)

    def _to_arrow(self, items: list[EmbeddedItem]) -> pa.Table:
        rows = [{**item.payload(), VECTOR_COLUMN: item.embedding} for item in items]
        return pa.Table.from_pylist(rows, schema=self.schema())

    async def _existing_ids(self, ids: list[str]) -> set[str]:
        """Return the subset of ids already present in the table."""
        if not ids:
            return set()
        predicate = f"id IN ({', '.join(_quote(i) for i in ids)})"
        result = await self.table.query().where(predicate).select(["id"]).to_arrow()
        return set(result.column("id").to_pylist())

    async def _write(self, items: list[EmbeddedItem]) -> None:
        """Insert rows whose id is not already present."""
        batch_size = self._config.insert_batch_size
        for start in range(0, len(items), batch_size):
            chunk = items[start:start + batch_size]
            await (
                self.table.merge_insert("id")
                .when_not_matched_insert_all()
                .execute(self._to_arrow(chunk))
            )

    @asynccontextmanager
    async def _claim_ids(self, ids: list[str]) -> AsyncIterator[None]:
        """Hold the write locks for ids, acquired in sorted order."""
        keys = sorted(set(ids))
        for key in keys:
            self._id_users[key] += 1
            self._id_locks.setdefault(key, asyncio.Lock())

        held: list[asyncio.Lock] = []
        try:
            for key in keys:
                lock = self._id_locks[key]
                await lock.acquire()
                held.append(lock)
            yield
        finally:
            for lock in held:
                lock.release()
            for key in keys:
                self._id_users[key] -= 1
                if self._id_users[key] == 0:
                    del self._id_users[key]
                    del self._id_locks[key]

    async def insert_one(self, item: EmbeddedItem) -> None:
        """
        Insert one row.

        Raises:
            DuplicateItemError: If a row with this id already exists
        """
        start = time.perf_counter()

        async with self._claim_ids([item.id]):
            if await self._existing_ids([item.id]):
                raise DuplicateItemError([item.id])
            await self._write([item])

        self._metrics.record_store_latency("insert_one", time.perf_counter() - start)

    async def insert_many(self, items: list[EmbeddedItem]) -> None:
        """
        Insert a batch of rows, skipping ids that already exist.

        An id repeated within the batch is written once, from its first
        occurrence.

        Raises:
            DuplicateItemError: After writing the new rows, if any id was skipped
        """
        if not items:
            return

        start = time.perf_counter()
        unique, repeated = split_repeated_ids(items)

        async with self._claim_ids([item.id for item in unique]):
            existing = await self._existing_ids([item.id for item in unique])
            fresh = [item for item in unique if item.id not in existing]
            if fresh:
                await self._write(fresh)

        self._metrics.record_store_latency("insert_many", time.perf_counter() - start)
        logger.debug(
            "LanceDB batch insert",
            inserted=len(fresh),
            skipped=len(existing),
            repeated=len(repeated),
        )

        skipped = sorted(existing) + repeated
        if skipped:
            raise DuplicateItemError(skipped)

    async def search(
        self,
        query_vector: list[float],
        limit: int,
        author: str | None = None,
        category: int | None = None,
        min_created_at: int | None = None,
        max_created_at: int | None = None,
    ) -> list[VectorSearchHit]:
        """
        Nearest-neighbor search returning L2 (or configured) distances.

        Returns:
            Hits ordered by ascending distance
        """
        start = time.perf_counter()

        query = (
            self.table.query()
            .nearest_to(query_vector)
            .column(VECTOR_COLUMN)
            .distance_type(self._config.lancedb_distance_type)
            .select(["id", "author", "created_at", "category", "tags"])
            .limit(limit)
        )

        where = build_where_clause(author, category, min_created_at, max_created_at)
        if where:
            query = query.where(where)

        result = await query.to_arrow()
        rows = result.to_pylist()

        self._metrics.record_store_latency("search", time.perf_counter() - start)

        hits = [
            VectorSearchHit(
                item_id=row["id"],
                raw_score=float(row["_distance"]),
                payload={k: v for k, v in row.items() if k != "_distance"},
            )
            for row in rows
        ]
        hits.sort(key=lambda hit: hit.raw_score)
        return hits

    async def create_index(self) -> None:
        """
        Train an IVF-PQ index on the vector column.

        Raises:
            VectorStoreError: If the table holds too few rows to train, or the
                vector column is already indexed
        """
        start = time.perf_counter()

        rows = await self.table.count_rows()
        if rows < self._config.lancedb_min_index_rows:
            raise VectorStoreError(
                f"Not enough rows to train index: have {rows}, "
                f"need {self._config.lancedb_min_index_rows}"
            )

        for index in await self.table.list_indices():
            if VECTOR_COLUMN in list(index.columns):
                raise VectorStoreError(f"Index already exists on column {VECTOR_COLUMN}")

        await self.table.create_index(
            VECTOR_COLUMN,
            config=IvfPq(distance_type=self._config.lancedb_distance_type),
        )

        self._metrics.record_store_latency("create_index", time.perf_counter() - start)
        logger.info("LanceDB vector index created", table=self._table_name, rows=rows)

    async def count(self) -> int:
        """Number of rows in the table."""
        return await self.table.count_rows()
