# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Semantic cache core.

Similarity-gated retrieval over a LanceDB table, with keys embedded by a
pluggable HTTP embedding provider.
"""

from .semantic_cache import DEFAULT_SEARCH_LIMIT, SemanticCache
from .similarity import cosine_similarity
from .store import LanceRecordStore, key_predicate, quote_literal

__all__ = [
    "DEFAULT_SEARCH_LIMIT",
    "SemanticCache",
    "LanceRecordStore",
    "cosine_similarity",
    "key_predicate",
    "quote_literal",
]
