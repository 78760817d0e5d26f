# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Semantic Cache.

Lookups match by meaning: the query is embedded, the nearest stored record
is fetched from LanceDB, re-scored locally with cosine similarity, and
returned only if similarity >= min_proximity.

Namespaces are physically distinct tables (``{table_name}_{namespace}``).

Failure policy:
- get / get_many / lookup / search / delete / bulk_delete / flush degrade
  to miss / [] / 0 / no-op and log; they never raise operational errors.
- set / set_many propagate embedding and store errors.
- Configuration errors always raise.
"""

import asyncio
import time
from collections.abc import Sequence
from typing import Any

import structlog

from ..config import CacheSettings, build_settings
from ..errors import ValidationError
from ..metrics import CACHE_ERRORS, CACHE_HITS, CACHE_LATENCY, CACHE_MISSES
from ..models import CacheLookup, CacheRecord, SearchResult
from ..providers import EmbeddingProvider, create_provider
from .similarity import cosine_similarity
from .store import LanceRecordStore

logger = structlog.get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 5

# Vectors are stored as float32; an identical key re-scores slightly below 1.0
SIMILARITY_TOLERANCE = 1e-6


def _short(key: str) -> str:
    """Truncated key for log context."""
    return key if len(key) <= 48 else key[:45] + "..."


def _require_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            f"{name} must be a string, got {type(value).__name__}",
            details={"argument": name},
        )
    return value


def _require_str_list(name: str, values: Any) -> list[str]:
    if isinstance(values, str) or not isinstance(values, Sequence):
        raise ValidationError(
            f"{name} must be a list of strings, got {type(values).__name__}",
            details={"argument": name},
        )
    for v in values:
        _require_str(name, v)
    return list(values)


class SemanticCache:
    """Embedding-based key-value cache over LanceDB.

    Usage:
        async with SemanticCache(provider="openai", namespace="faq") as cache:
            await cache.set("Capital of France?", "Paris")
            await cache.get("What is France's capital?")  # "Paris"
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        embedder: EmbeddingProvider | None = None,
        store: LanceRecordStore | None = None,
        **overrides: Any,
    ) -> None:
        """Resolve configuration and build the embedding provider.

        Args:
            settings: Pre-built settings; ``overrides`` are applied on top
            embedder: Embedding provider (default: built from settings)
            store: Record store (default: LanceDB store from settings)
            **overrides: Any ``CacheSettings`` field, e.g. ``min_proximity=0.95``

        Raises:
            ConfigurationError: malformed or unknown settings, unknown provider, or a
                missing API key for the selected provider
        """
        settings = build_settings(settings, **overrides)
        self._settings = settings
        self._embedder = embedder or create_provider(settings)
        self._store = store or LanceRecordStore(
            settings.db_uri,
            settings.resolved_table_name,
            settings.storage_options(),
        )
        self._min_proximity = settings.min_proximity

        logger.debug(
            "semantic_cache_created",
            provider=self._embedder.name,
            model=self._embedder.model,
            table=self.table_name,
            min_proximity=self._min_proximity,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def embedder(self) -> EmbeddingProvider:
        return self._embedder

    @property
    def store(self) -> LanceRecordStore:
        return self._store

    @property
    def provider(self) -> str:
        return self._embedder.name

    @property
    def min_proximity(self) -> float:
        return self._min_proximity

    @property
    def namespace(self) -> str | None:
        return self._settings.namespace

    @property
    def table_name(self) -> str:
        return self._store.table_name

    # =========================================================================
    # Reads
    # =========================================================================

    async def lookup(self, key: str) -> CacheLookup:
        """Gated lookup with the outcome made explicit.

        Never raises operational errors: a failure is returned as a miss with
        ``error`` set, and logged.
        """
        key = _require_str("key", key)
        start = time.monotonic()
        try:
            outcome = await self._lookup(key)
        except Exception as e:
            logger.error("cache_lookup_error", key=_short(key), error=str(e), exc_info=True)
            CACHE_ERRORS.labels(operation="get").inc()
            outcome = CacheLookup(key=key, error=str(e))
        finally:
            CACHE_LATENCY.labels(operation="get").observe(time.monotonic() - start)

        if outcome.hit:
            CACHE_HITS.labels(table=self.table_name).inc()
        else:
            CACHE_MISSES.labels(table=self.table_name).inc()
        return outcome

    async def _lookup(self, key: str) -> CacheLookup:
        if await self._store.initialize_table() is None:
            logger.debug("cache_miss_no_table", key=_short(key), table=self.table_name)
            return CacheLookup(key=key)

        query = await self._embedder.embed(key)
        candidates = await self._store.nearest(query, 1)
        if not candidates:
            logger.debug("cache_miss_empty", key=_short(key))
            return CacheLookup(key=key)

        best = candidates[0]
        similarity = cosine_similarity(query, best.vector)
        if similarity >= self._min_proximity - SIMILARITY_TOLERANCE:
            logger.debug("cache_hit", key=_short(key), similarity=round(similarity, 4))
            return CacheLookup(
                key=key,
                value=best.value,
                similarity=similarity,
                matched_key=best.text,
            )

        logger.debug(
            "cache_miss",
            key=_short(key),
            similarity=round(similarity, 4),
            threshold=self._min_proximity,
        )
        return CacheLookup(key=key, similarity=similarity, matched_key=best.text)

    async def get(self, key: str) -> str | None:
        """Return the cached value for the closest key, or None on a miss."""
        outcome = await self.lookup(key)
        return outcome.value

    async def get_many(self, keys: Sequence[str]) -> list[str | None]:
        """Resolve ``keys`` concurrently; results keep input order."""
        keys = _require_str_list("keys", keys)
        if not keys:
            return []
        outcomes = await asyncio.gather(*(self.lookup(k) for k in keys))
        return [o.value for o in outcomes]

    async def search(self, key: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[SearchResult]:
        """Return up to ``limit`` neighbours with cosine similarity, highest first.

        Not gated by min_proximity; meant for threshold calibration and
        debugging. Returns [] on any operational failure.
        """
        key = _require_str("key", key)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit must be a positive integer", details={"limit": limit})

        start = time.monotonic()
        try:
            if await self._store.initialize_table() is None:
                return []
            query = await self._embedder.embed(key)
            candidates = await self._store.nearest(query, limit)
            results = [
                SearchResult(
                    id=c.id,
                    text=c.text,
                    value=c.value,
                    similarity=cosine_similarity(query, c.vector),
                )
                for c in candidates
            ]
        except Exception as e:
            logger.error("cache_search_error", key=_short(key), error=str(e), exc_info=True)
            CACHE_ERRORS.labels(operation="search").inc()
            return []
        finally:
            CACHE_LATENCY.labels(operation="search").observe(time.monotonic() - start)

        # Store ranking uses its own metric; re-rank by local similarity
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:limit]

    # =========================================================================
    # Writes
    # =========================================================================

    async def set(self, key: str, value: str) -> None:
        """Cache ``value`` under ``key``, replacing any previous value.

        Raises:
            EmbeddingProviderError: if the key cannot be embedded
            StoreError: if the write fails
        """
        key = _require_str("key", key)
        value = _require_str("value", value)
        vector = await self._embedder.embed(key)
        await self._store.upsert([CacheRecord.from_entry(key, value, vector)])
        logger.debug("cache_set", key=_short(key), table=self.table_name)

    async def set_many(self, keys: Sequence[str], values: Sequence[str]) -> None:
        """Cache ``values[i]`` under ``keys[i]`` in one batched write.

        Keys are embedded concurrently; the write happens once all embeddings
        succeeded, so a failed embedding writes nothing.

        Raises:
            ValidationError: if ``keys`` and ``values`` differ in length
        """
        keys = _require_str_list("keys", keys)
        values = _require_str_list("values", values)
        if len(keys) != len(values):
            raise ValidationError(
                f"keys and values must have the same length ({len(keys)} != {len(values)})",
                details={"keys": len(keys), "values": len(values)},
            )
        if not keys:
            return

        vectors = await asyncio.gather(*(self._embedder.embed(k) for k in keys))
        records = [
            CacheRecord.from_entry(k, v, vec)
            for k, v, vec in zip(keys, values, vectors)
        ]
        written = await self._store.upsert(records)
        logger.debug("cache_set_many", records=written, table=self.table_name)

    async def delete(self, key: str) -> int:
        """Delete the record for ``key``. Returns 1 if removed, 0 otherwise (never raises)."""
        key = _require_str("key", key)
        try:
            deleted = await self._store.delete_key(key)
        except Exception as e:
            logger.error("cache_delete_error", key=_short(key), error=str(e), exc_info=True)
            CACHE_ERRORS.labels(operation="delete").inc()
            return 0
        logger.debug("cache_delete", key=_short(key), deleted=deleted)
        return deleted

    async def bulk_delete(self, keys: Sequence[str]) -> int:
        """Delete each key in order; returns rows removed.

        A failure stops the sequence; the rows removed before it are still
        reported.
        """
        keys = _require_str_list("keys", keys)
        deleted = 0
        for i, key in enumerate(keys):
            try:
                deleted += await self._store.delete_key(key)
            except Exception as e:
                logger.error(
                    "cache_bulk_delete_error",
                    key=_short(key),
                    deleted=deleted,
                    remaining=len(keys) - i,
                    error=str(e),
                    exc_info=True,
                )
                CACHE_ERRORS.labels(operation="bulk_delete").inc()
                break
        logger.debug("cache_bulk_delete", requested=len(keys), deleted=deleted)
        return deleted

    async def flush(self) -> None:
        """Drop every record in this namespace's table (irreversible).

        Other namespaces are separate tables and are not touched. The table is
        recreated by the next write.
        """
        try:
            await self._store.drop()
        except Exception as e:
            logger.error("cache_flush_error", table=self.table_name, error=str(e), exc_info=True)
            CACHE_ERRORS.labels(operation="flush").inc()
            return
        logger.info("cache_flushed", table=self.table_name)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Release in-process handles. The cache reconnects lazily on next use."""
        await self._store.close()
        await self._embedder.aclose()

    async def __aenter__(self) -> "SemanticCache":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"SemanticCache(provider={self._embedder.name!r}, table={self.table_name!r}, "
            f"min_proximity={self._min_proximity})"
        )
