# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Pytest configuration and shared fixtures."""

import hashlib
import math

import pytest

from semcache.cache.semantic_cache import SemanticCache
from semcache.config import CacheSettings, clear_settings_cache
from semcache.errors import EmbeddingProviderError, StoreError
from semcache.models import CacheRecord

CACHE_ENV_VARS = [
    "CACHE_MIN_PROXIMITY",
    "EMBED_PROVIDER",
    "EMBEDDING_TIMEOUT_SECONDS",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_BASE_URL",
    "VOYAGE_API_KEY",
    "VOYAGE_MODEL",
    "VOYAGE_BASE_URL",
    "LANCEDB_URI",
    "CACHE_TABLE_NAME",
    "CACHE_NAMESPACE",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_REGION",
    "S3_ENDPOINT",
    "ALLOW_HTTP",
    "STORAGE_TIMEOUT",
    "STORAGE_CONNECT_TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    # Bare field names, never read from the environment
    "MIN_PROXIMITY",
    "PROVIDER",
    "DB_URI",
    "TABLE_NAME",
    "NAMESPACE",
    "REGION",
    "ENDPOINT",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test without cache env vars, away from any .env file."""
    for name in CACHE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Fakes
# =============================================================================


def hashed_vector(text: str, dim: int = 8) -> list[float]:
    """Deterministic pseudo-embedding: equal texts give equal vectors."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [digest[i] / 255.0 - 0.5 for i in range(dim)]


class FakeEmbedder:
    """Deterministic embedder: fixed vectors per text, hashed vectors otherwise."""

    name = "fake"
    model = "fake-embedding"

    def __init__(self, vectors: dict[str, list[float]] | None = None, dim: int = 8):
        self.vectors = dict(vectors or {})
        self.dim = dim
        self.calls: list[str] = []
        self.failing: set[str] = set()
        self.closed = 0

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.failing:
            raise EmbeddingProviderError(self.name, "upstream unavailable", status_code=503)
        if text in self.vectors:
            return list(self.vectors[text])
        return hashed_vector(text, self.dim)

    async def aclose(self) -> None:
        self.closed += 1


class InMemoryRecordStore:
    """Record store fake with LanceDB-like semantics.

    Ranks by euclidean distance (not cosine) so callers must re-score.
    """

    def __init__(self, table_name: str = "semantic_cache"):
        self.table_name = table_name
        self.rows: dict[str, CacheRecord] | None = None  # None = table absent
        self.fail_on: set[str] = set()
        self.fail_delete_keys: set[str] = set()
        self.nearest_calls: list[int] = []
        self.closed = 0

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(operation, self.table_name, RuntimeError("store unavailable"))

    async def initialize_table(self):
        self._maybe_fail("open_table")
        return self.rows

    async def nearest(self, vector, k):
        self._maybe_fail("vector_search")
        self.nearest_calls.append(k)
        if not self.rows:
            return []
        ranked = sorted(
            self.rows.values(),
            key=lambda r: math.dist(r.vector, vector) if len(r.vector) == len(vector) else 0.0,
        )
        return ranked[:k]

    async def upsert(self, records):
        self._maybe_fail("merge_insert")
        if self.rows is None:
            self.rows = {}
        for record in records:
            self.rows[record.id] = record
        return len({r.id for r in records})

    async def delete_key(self, key):
        self._maybe_fail("delete")
        if key in self.fail_delete_keys:
            raise StoreError("delete", self.table_name, RuntimeError("delete failed"))
        if not self.rows or key not in self.rows:
            return 0
        del self.rows[key]
        return 1

    async def drop(self):
        self._maybe_fail("drop_table")
        existed = self.rows is not None
        self.rows = None
        return existed

    async def close(self):
        self.closed += 1


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def settings():
    return CacheSettings(voyage_api_key="test-key")


@pytest.fixture
def cache(settings, embedder, store):
    return SemanticCache(settings, embedder=embedder, store=store)
