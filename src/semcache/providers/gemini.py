# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Google Gemini embeddings (embedContent endpoint)."""

from typing import Any

from .base import EmbeddingProvider


class GeminiEmbeddingProvider(EmbeddingProvider):
    """POST {base_url}/models/{model}:embedContent, API key as ``key`` query parameter."""

    name = "gemini"
    display_name = "Gemini"
    env_var = "GEMINI_API_KEY"
    default_model = "gemini-embedding-001"

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key, model, base_url=base_url, **kwargs)

    def _build_request(self, text: str) -> dict[str, Any]:
        model = self._model.removeprefix("models/")
        return {
            "url": f"{self.base_url}/models/{model}:embedContent",
            "params": {"key": self._api_key},
            "json": {"content": {"parts": [{"text": text}]}},
        }

    def _extract_embedding(self, payload: dict[str, Any]) -> Any:
        embedding = payload.get("embedding")
        if not isinstance(embedding, dict):
            return None
        return embedding.get("values")
