# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Embedding provider interface.

Every provider turns one text into one vector with a single HTTP request.
There is no local retry: a failed request raises ``EmbeddingProviderError``
and aborts the enclosing cache operation.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from ..errors import EmbeddingProviderError, MissingCredentialError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
_MAX_ERROR_BODY = 2000


class EmbeddingProvider(ABC):
    """Base class for HTTP-backed embedding providers.

    Subclasses set ``name``/``env_var``/``default_model`` and implement
    ``_build_request`` and ``_extract_embedding``.
    """

    name: str = ""
    display_name: str = ""
    env_var: str = ""
    default_model: str = ""

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        *,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise MissingCredentialError(self.display_name or self.name, self.env_var)
        self._api_key = api_key
        self._model = model or self.default_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def get_name(self) -> str:
        return self.name

    def get_model(self) -> str:
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client. The provider reopens one on next use."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    @abstractmethod
    def _build_request(self, text: str) -> dict[str, Any]:
        """Return httpx request kwargs (url, json, headers, params)."""

    @abstractmethod
    def _extract_embedding(self, payload: dict[str, Any]) -> Any:
        """Pull the raw embedding out of a successful response body."""

    async def embed(self, text: str) -> list[float]:
        """Compute the embedding vector for ``text``.

        Raises:
            EmbeddingProviderError: on transport failure, non-2xx status,
                or a response without a usable embedding
        """
        client = await self._get_client()
        request = self._build_request(text)

        try:
            resp = await client.post(**request)
        except httpx.HTTPError as e:
            logger.warning("embedding_request_failed", provider=self.name, error=str(e))
            raise EmbeddingProviderError(
                self.name, f"Failed to get {self.display_name} embedding: {e}"
            ) from e

        if resp.is_error:
            body = resp.text[:_MAX_ERROR_BODY]
            logger.warning(
                "embedding_api_error",
                provider=self.name,
                status_code=resp.status_code,
            )
            raise EmbeddingProviderError(
                self.name,
                f"{self.display_name} API error: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise EmbeddingProviderError(
                self.name,
                f"{self.display_name} returned a non-JSON response",
                status_code=resp.status_code,
                body=resp.text[:_MAX_ERROR_BODY],
            ) from e

        raw = self._extract_embedding(payload) if isinstance(payload, dict) else None
        if not raw or not isinstance(raw, list):
            raise EmbeddingProviderError(
                self.name,
                f"No embedding returned from {self.display_name}",
                status_code=resp.status_code,
            )
        try:
            return [float(v) for v in raw]
        except (TypeError, ValueError) as e:
            raise EmbeddingProviderError(
                self.name, f"Malformed embedding returned from {self.display_name}"
            ) from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self._model!r}, base_url={self.base_url!r})"
