# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""LanceDB record store for the semantic cache.

Maps cache records (id, text, value, vector) onto one LanceDB table:

- Connection is opened lazily and memoized per store instance.
- The table is opened lazily; if absent, it is created by the first write
  (LanceDB needs a schema-bearing record to create a table).
- Writes are upserts on ``id`` (merge_insert), so a key maps to one row.
- Key literals are quoted before they reach LanceDB's SQL filter language.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import lancedb
import pyarrow as pa
import structlog

from ..errors import StoreError
from ..models import CacheRecord

logger = structlog.get_logger(__name__)

ConnectFn = Callable[..., Awaitable[Any]]


def quote_literal(value: str) -> str:
    """Render ``value`` as a SQL string literal (single quotes doubled)."""
    return "'" + value.replace("'", "''") + "'"


def key_predicate(key: str) -> str:
    """Filter expression matching the record whose id is ``key``."""
    return f"id = {quote_literal(key)}"


def record_schema(dim: int) -> pa.Schema:
    """Arrow schema for cache records with ``dim``-dimensional vectors."""
    return pa.schema(
        [
            pa.field("id", pa.string(), nullable=False),
            pa.field("text", pa.string(), nullable=False),
            pa.field("value", pa.string(), nullable=False),
            pa.field("vector", pa.list_(pa.float32(), dim), nullable=False),
        ]
    )


def _to_arrow(records: Sequence[CacheRecord], schema: pa.Schema) -> pa.Table:
    return pa.Table.from_pylist([r.to_row() for r in records], schema=schema)


class LanceRecordStore:
    """Adapter between cache semantics and a LanceDB table."""

    def __init__(
        self,
        uri: str,
        table_name: str,
        storage_options: dict[str, str] | None = None,
        *,
        connect: ConnectFn | None = None,
    ) -> None:
        self.uri = uri
        self.table_name = table_name
        self._storage_options = dict(storage_options or {})
        self._connect = connect or lancedb.connect_async
        self._connection: Any = None
        self._table: Any = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def has_table(self) -> bool:
        return self._table is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _get_connection(self) -> Any:
        """Get or open the LanceDB connection."""
        if self._connection is None:
            try:
                if self._storage_options:
                    self._connection = await self._connect(
                        self.uri, storage_options=self._storage_options
                    )
                else:
                    self._connection = await self._connect(self.uri)
            except Exception as e:
                raise StoreError("connect", self.table_name, e) from e
            logger.info(
                "lancedb_connected",
                uri=self.uri,
                table=self.table_name,
                storage_options=sorted(self._storage_options),
            )
        return self._connection

    async def _table_names(self, conn: Any) -> list[str]:
        """All table names, following list_tables pagination."""
        names: list[str] = []
        page_token = None
        while True:
            response = await conn.list_tables(page_token=page_token)
            names.extend(response.tables)
            page_token = response.page_token
            if not page_token:
                return names

    async def _open_table(self) -> Any:
        """Open the table if it exists; leave it unset otherwise."""
        if self._table is not None:
            return self._table

        conn = await self._get_connection()
        try:
            if self.table_name in await self._table_names(conn):
                self._table = await conn.open_table(self.table_name)
                logger.debug("table_opened", table=self.table_name)
        except Exception as e:
            raise StoreError("open_table", self.table_name, e) from e
        return self._table

    async def initialize_table(self) -> Any:
        """Open the backing table if it exists. Idempotent.

        Returns the table handle, or None while the table has not been
        created by a first write.
        """
        async with self._lock:
            return await self._open_table()

    async def close(self) -> None:
        """Close the connection and forget table handles. No effect on stored data."""
        self._table = None
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        logger.debug("store_closed", table=self.table_name)

    # =========================================================================
    # Reads
    # =========================================================================

    async def nearest(self, vector: Sequence[float], k: int) -> list[CacheRecord]:
        """Return up to ``k`` records nearest to ``vector``, nearest first.

        Ranking is whatever the LanceDB index provides; callers re-score.
        """
        table = await self.initialize_table()
        if table is None:
            return []

        try:
            rows = await (
                table.query()
                .nearest_to(list(vector))
                .distance_type("cosine")
                .limit(k)
                .to_list()
            )
        except Exception as e:
            raise StoreError("vector_search", self.table_name, e) from e
        return [CacheRecord.from_row(row) for row in rows]

    async def count(self) -> int:
        """Number of rows in the table (0 if it does not exist)."""
        table = await self.initialize_table()
        if table is None:
            return 0
        try:
            return await table.count_rows()
        except Exception as e:
            raise StoreError("count_rows", self.table_name, e) from e

    # =========================================================================
    # Writes
    # =========================================================================

    async def upsert(self, records: Sequence[CacheRecord]) -> int:
        """Insert or replace ``records`` by id; creates the table on first write.

        Within one batch the last record for a duplicated id wins.
        Returns the number of distinct records written.
        """
        if not records:
            return 0
        deduped = list({r.id: r for r in records}.values())

        async with self._lock:
            table = await self._open_table()
            if table is None:
                conn = await self._get_connection()
                schema = record_schema(deduped[0].dim)
                try:
                    self._table = await conn.create_table(
                        self.table_name, data=_to_arrow(deduped, schema)
                    )
                except Exception as e:
                    raise StoreError("create_table", self.table_name, e) from e
                logger.info(
                    "table_created",
                    table=self.table_name,
                    dim=deduped[0].dim,
                    records=len(deduped),
                )
                return len(deduped)

            try:
                data = _to_arrow(deduped, await table.schema())
                await (
                    table.merge_insert("id")
                    .when_matched_update_all()
                    .when_not_matched_insert_all()
                    .execute(data)
                )
            except Exception as e:
                raise StoreError("merge_insert", self.table_name, e) from e

        logger.debug("records_upserted", table=self.table_name, records=len(deduped))
        return len(deduped)

    async def delete_where(self, predicate: str) -> int:
        """Delete rows matching a filter expression; returns rows removed.

        ``predicate`` is passed to LanceDB verbatim. Build it with
        ``key_predicate``/``quote_literal`` when it embeds caller text.
        """
        table = await self.initialize_table()
        if table is None:
            return 0

        try:
            count = await table.count_rows(predicate)
            if count:
                await table.delete(predicate)
        except Exception as e:
            raise StoreError("delete", self.table_name, e) from e
        return count

    async def delete_key(self, key: str) -> int:
        """Delete the record for ``key``; returns rows removed (0 or 1)."""
        return await self.delete_where(key_predicate(key))

    async def drop(self) -> bool:
        """Drop the backing table. Returns False if it did not exist."""
        async with self._lock:
            conn = await self._get_connection()
            try:
                dropped = self.table_name in await self._table_names(conn)
                if dropped:
                    await conn.drop_table(self.table_name)
            except Exception as e:
                raise StoreError("drop_table", self.table_name, e) from e
            finally:
                self._table = None

        if dropped:
            logger.info("table_dropped", table=self.table_name)
        return dropped
