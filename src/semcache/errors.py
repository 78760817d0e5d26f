# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Error codes and exception classes for the semantic cache.

Two families of errors:

- Configuration errors (missing credential, unknown provider, malformed
  settings, bad call arguments) are raised synchronously and loudly.
- Operational errors (embedding service or vector store failures) are raised
  by the lower layers and degraded to a miss / empty / zero result by
  ``SemanticCache`` for every operation except ``set``.

Error dict schema:
```json
{
  "error": {
    "code": "EMBEDDING_PROVIDER_ERROR",
    "message": "openai embedding request failed with status 401",
    "details": {"provider": "openai", "status_code": 401, "body": "..."},
    "suggestion": "Check the provider API key, model name and service status"
  }
}
```
"""

from enum import Enum
from typing import Any


class CacheErrorCode(str, Enum):
    """Standard semantic cache error codes."""

    # Configuration
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"

    # Call arguments
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Operational
    EMBEDDING_PROVIDER_ERROR = "EMBEDDING_PROVIDER_ERROR"
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    STORE_ERROR = "STORE_ERROR"


ERROR_CODE_SUGGESTIONS: dict[CacheErrorCode, str] = {
    CacheErrorCode.CONFIGURATION_ERROR: "Review the cache settings and their environment variables",
    CacheErrorCode.MISSING_CREDENTIAL: "Pass the provider API key explicitly or export it in the environment",
    CacheErrorCode.UNSUPPORTED_PROVIDER: "Use one of the supported providers: openai, gemini, voyage",
    CacheErrorCode.VALIDATION_ERROR: "Check the arguments passed to the cache operation",
    CacheErrorCode.EMBEDDING_PROVIDER_ERROR: "Check the provider API key, model name and service status",
    CacheErrorCode.DIMENSION_MISMATCH: "Flush the cache after switching embedding model or provider",
    CacheErrorCode.STORE_ERROR: "Check the LanceDB URI, storage credentials and network access",
}

OPERATIONAL_ERROR_CODES = frozenset(
    {
        CacheErrorCode.EMBEDDING_PROVIDER_ERROR,
        CacheErrorCode.DIMENSION_MISMATCH,
        CacheErrorCode.STORE_ERROR,
    }
)


class SemanticCacheError(Exception):
    """Base exception for semantic cache errors.

    Usage:
        raise SemanticCacheError(
            code=CacheErrorCode.STORE_ERROR,
            message=f"Table '{table_name}' could not be opened",
            details={"table": table_name},
        )
    """

    def __init__(
        self,
        code: CacheErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        self.code = code if isinstance(code, CacheErrorCode) else CacheErrorCode(code)
        self.message = message
        self.details = details
        self.suggestion = suggestion or ERROR_CODE_SUGGESTIONS.get(self.code)
        super().__init__(message)

    @property
    def is_operational(self) -> bool:
        """True for failures of the external services rather than of the caller."""
        return self.code in OPERATIONAL_ERROR_CODES

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "suggestion": self.suggestion,
            }
        }


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(SemanticCacheError):
    """Raised when the cache is misconfigured."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: CacheErrorCode = CacheErrorCode.CONFIGURATION_ERROR,
    ):
        super().__init__(code=code, message=message, details=details)


class MissingCredentialError(ConfigurationError):
    """Raised when the selected embedding provider has no API key."""

    def __init__(self, provider: str, env_var: str | None = None):
        message = f"{provider} API key is required"
        if env_var:
            message += f". Set it via the {env_var.lower()} argument or the {env_var} environment variable."
        super().__init__(
            message=message,
            details={"provider": provider, "env_var": env_var},
            code=CacheErrorCode.MISSING_CREDENTIAL,
        )
        self.provider = provider


class UnsupportedProviderError(ConfigurationError):
    """Raised when the provider tag names no known embedding backend."""

    def __init__(self, provider: str, supported: list[str]):
        super().__init__(
            message=(
                f"Unsupported embedding provider: {provider}. "
                f"Supported providers are: {', '.join(supported)}"
            ),
            details={"provider": provider, "supported": supported},
            code=CacheErrorCode.UNSUPPORTED_PROVIDER,
        )
        self.provider = provider


class ValidationError(SemanticCacheError):
    """Raised when a cache operation receives invalid arguments."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=CacheErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
        )


# =============================================================================
# Operational errors
# =============================================================================


class EmbeddingProviderError(SemanticCacheError):
    """Raised when an embedding request fails or returns no embedding."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        details: dict[str, Any] = {"provider": provider}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body
        super().__init__(
            code=CacheErrorCode.EMBEDDING_PROVIDER_ERROR,
            message=message,
            details=details,
        )
        self.provider = provider
        self.status_code = status_code
        self.body = body


class DimensionMismatchError(SemanticCacheError):
    """Raised when two vectors of different length are compared."""

    def __init__(self, left: int, right: int):
        super().__init__(
            code=CacheErrorCode.DIMENSION_MISMATCH,
            message=f"Vectors must have the same length (got {left} and {right})",
            details={"left": left, "right": right},
        )


class StoreError(SemanticCacheError):
    """Raised by the record store adapter when LanceDB fails."""

    def __init__(self, operation: str, table: str, cause: Exception):
        super().__init__(
            code=CacheErrorCode.STORE_ERROR,
            message=f"LanceDB {operation} failed on table '{table}': {cause}",
            details={"operation": operation, "table": table},
        )
        self.operation = operation
        self.table = table
