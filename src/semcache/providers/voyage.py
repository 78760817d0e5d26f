# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""VoyageAI embeddings (voyage-3.5-lite by default)."""

from typing import Any

from .base import EmbeddingProvider


class VoyageEmbeddingProvider(EmbeddingProvider):
    """POST {base_url}/embeddings with a bearer token."""

    name = "voyage"
    display_name = "VoyageAI"
    env_var = "VOYAGE_API_KEY"
    default_model = "voyage-3.5-lite"

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        *,
        base_url: str = "https://api.voyageai.com/v1",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key, model, base_url=base_url, **kwargs)

    def _build_request(self, text: str) -> dict[str, Any]:
        return {
            "url": f"{self.base_url}/embeddings",
            "headers": {"Authorization": f"Bearer {self._api_key}"},
            "json": {"input": [text], "model": self._model},
        }

    def _extract_embedding(self, payload: dict[str, Any]) -> Any:
        data = payload.get("data") or []
        if not data or not isinstance(data[0], dict):
            return None
        return data[0].get("embedding")
