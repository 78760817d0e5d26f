# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Embedding provider selection.

Closed set of providers keyed by ``ProviderKind``. Unknown tags raise
``UnsupportedProviderError``; a missing API key raises
``MissingCredentialError`` at construction, never on first use.
"""

from enum import Enum

import httpx
import structlog

from ..config import CacheSettings
from ..errors import UnsupportedProviderError
from .base import EmbeddingProvider
from .gemini import GeminiEmbeddingProvider
from .openai import OpenAIEmbeddingProvider
from .voyage import VoyageEmbeddingProvider

logger = structlog.get_logger(__name__)


class ProviderKind(str, Enum):
    """Supported embedding providers."""
    OPENAI = "openai"
    GEMINI = "gemini"
    VOYAGE = "voyage"

    @classmethod
    def parse(cls, tag: "str | ProviderKind") -> "ProviderKind":
        if isinstance(tag, ProviderKind):
            return tag
        try:
            return cls(tag.strip().lower())
        except ValueError:
            raise UnsupportedProviderError(tag, [k.value for k in cls]) from None


def create_provider(
    settings: CacheSettings,
    client: httpx.AsyncClient | None = None,
) -> EmbeddingProvider:
    """Create the embedding provider selected by ``settings.provider``."""
    kind = ProviderKind.parse(settings.provider)
    timeout = settings.embedding_timeout_seconds

    if kind is ProviderKind.OPENAI:
        provider: EmbeddingProvider = OpenAIEmbeddingProvider(
            settings.openai_api_key,
            settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=timeout,
            client=client,
        )
    elif kind is ProviderKind.GEMINI:
        provider = GeminiEmbeddingProvider(
            settings.gemini_api_key,
            settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=timeout,
            client=client,
        )
    else:
        provider = VoyageEmbeddingProvider(
            settings.voyage_api_key,
            settings.voyage_model,
            base_url=settings.voyage_base_url,
            timeout=timeout,
            client=client,
        )

    logger.debug("embedding_provider_created", provider=provider.name, model=provider.model)
    return provider
