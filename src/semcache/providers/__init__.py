# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Embedding providers: OpenAI, Gemini and VoyageAI over HTTP."""

from .base import EmbeddingProvider
from .factory import ProviderKind, create_provider
from .gemini import GeminiEmbeddingProvider
from .openai import OpenAIEmbeddingProvider
from .voyage import VoyageEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "ProviderKind",
    "create_provider",
    "OpenAIEmbeddingProvider",
    "GeminiEmbeddingProvider",
    "VoyageEmbeddingProvider",
]
