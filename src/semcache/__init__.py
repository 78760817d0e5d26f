# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""semcache - semantic key-value cache matched by embedding similarity."""

__version__ = "0.1.0"

from .cache import LanceRecordStore, SemanticCache, cosine_similarity
from .config import CacheSettings, get_settings
from .errors import (
    CacheErrorCode,
    SemanticCacheError,
    ConfigurationError,
    MissingCredentialError,
    UnsupportedProviderError,
    ValidationError,
    EmbeddingProviderError,
    DimensionMismatchError,
    StoreError,
)
from .log_config import configure_logging
from .models import CacheLookup, CacheRecord, SearchResult
from .providers import (
    EmbeddingProvider,
    ProviderKind,
    create_provider,
    OpenAIEmbeddingProvider,
    GeminiEmbeddingProvider,
    VoyageEmbeddingProvider,
)

__all__ = [
    # Cache
    "SemanticCache",
    "LanceRecordStore",
    "cosine_similarity",
    # Config
    "CacheSettings",
    "get_settings",
    "configure_logging",
    # Models
    "CacheRecord",
    "CacheLookup",
    "SearchResult",
    # Providers
    "EmbeddingProvider",
    "ProviderKind",
    "create_provider",
    "OpenAIEmbeddingProvider",
    "GeminiEmbeddingProvider",
    "VoyageEmbeddingProvider",
    # Errors
    "CacheErrorCode",
    "SemanticCacheError",
    "ConfigurationError",
    "MissingCredentialError",
    "UnsupportedProviderError",
    "ValidationError",
    "EmbeddingProviderError",
    "DimensionMismatchError",
    "StoreError",
]
