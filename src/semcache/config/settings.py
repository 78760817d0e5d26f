# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Cache settings using Pydantic Settings."""

import re
from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ..errors import ConfigurationError

DEFAULT_MIN_PROXIMITY = 0.9
DEFAULT_PROVIDER = "voyage"  # Historical default, kept for backward compatibility
DEFAULT_TABLE_NAME = "semantic_cache"
DEFAULT_DB_URI = "./lancedb"

_TABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")

# Fields whose environment variable differs from the field name
ENV_NAMES: dict[str, str] = {
    "min_proximity": "cache_min_proximity",
    "provider": "embed_provider",
    "db_uri": "lancedb_uri",
    "table_name": "cache_table_name",
    "namespace": "cache_namespace",
    "region": "aws_region",
    "endpoint": "s3_endpoint",
}
_FIELDS_BY_ENV = {env: field for field, env in ENV_NAMES.items()}


def _env(field: str) -> AliasChoices:
    """Environment variable first, then the field name (constructor keyword)."""
    return AliasChoices(ENV_NAMES[field], field)


class _DocumentedEnvSource(PydanticBaseSettingsSource):
    """Environment (or .env) source restricted to the documented variable names.

    For renamed fields the bare field name (``PROVIDER``, ``REGION``...) is not
    read from the environment, and values are keyed by field name so explicit
    keyword arguments always override them.
    """

    def __init__(self, settings_cls: type[BaseSettings], source: PydanticBaseSettingsSource):
        super().__init__(settings_cls)
        self._source = source

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._source.get_field_value(field, field_name)

    def __call__(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for key, value in self._source().items():
            if key in ENV_NAMES:
                continue
            values[_FIELDS_BY_ENV.get(key, key)] = value
        return values


class CacheSettings(BaseSettings):
    """Semantic cache configuration.

    Every setting can be passed explicitly or overridden via its environment
    variable. Precedence: explicit argument > environment > default. Renamed
    fields (``provider`` reads ``EMBED_PROVIDER``...) only read their
    documented variable.

    The embedding provider defaults to ``voyage`` for backward compatibility.
    Only the API key of the selected provider is required.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            _DocumentedEnvSource(settings_cls, env_settings),
            _DocumentedEnvSource(settings_cls, dotenv_settings),
            file_secret_settings,
        )

    # Similarity gate
    min_proximity: float = Field(
        DEFAULT_MIN_PROXIMITY,
        ge=0.0,
        le=1.0,
        validation_alias=_env("min_proximity"),
    )

    # Embedding provider selection
    provider: str = Field(DEFAULT_PROVIDER, validation_alias=_env("provider"))
    embedding_timeout_seconds: float = Field(30.0, gt=0)

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "text-embedding-3-small"
    openai_base_url: str = "https://api.openai.com/v1"

    # Google Gemini
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-embedding-001"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # VoyageAI
    voyage_api_key: str | None = None
    voyage_model: str = "voyage-3.5-lite"
    voyage_base_url: str = "https://api.voyageai.com/v1"

    # LanceDB
    db_uri: str = Field(DEFAULT_DB_URI, validation_alias=_env("db_uri"))
    table_name: str = Field(DEFAULT_TABLE_NAME, validation_alias=_env("table_name"))
    namespace: str | None = Field(None, validation_alias=_env("namespace"))

    # Storage profile for S3 / S3-compatible object stores (Cloudflare R2, MinIO)
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    region: str | None = Field(None, validation_alias=_env("region"))
    endpoint: str | None = Field(None, validation_alias=_env("endpoint"))
    allow_http: bool | None = None
    storage_timeout: str | None = None  # e.g. "30s"
    storage_connect_timeout: str | None = None  # e.g. "5s"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        """Provider tags are case-insensitive."""
        return v.strip().lower()

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """LanceDB table names are limited to alphanumerics, '_', '-' and '.'."""
        if not _TABLE_NAME_RE.match(v):
            raise ValueError(f"Invalid table name: {v!r}")
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str | None) -> str | None:
        """Empty namespace means no namespace; otherwise it suffixes the table name."""
        if v is None or v == "":
            return None
        if not _TABLE_NAME_RE.match(v):
            raise ValueError(f"Invalid namespace: {v!r}")
        return v

    @field_validator(
        "openai_api_key",
        "gemini_api_key",
        "voyage_api_key",
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        "region",
        "endpoint",
        "storage_timeout",
        "storage_connect_timeout",
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """An empty string is treated as unset, never as a valid secret."""
        if v is None or not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @property
    def resolved_table_name(self) -> str:
        """Physical table name: one table per namespace."""
        if self.namespace:
            return f"{self.table_name}_{self.namespace}"
        return self.table_name

    def storage_options(self) -> dict[str, str]:
        """Return LanceDB storage options with unset fields stripped.

        An empty dict means a local (or default-credential) connection.
        """
        options: dict[str, str | None] = {
            "aws_access_key_id": self.aws_access_key_id,
            "aws_secret_access_key": self.aws_secret_access_key,
            "aws_session_token": self.aws_session_token,
            "region": self.region,
            "endpoint": self.endpoint,
            "timeout": self.storage_timeout,
            "connect_timeout": self.storage_connect_timeout,
        }
        if self.allow_http is not None:
            options["allow_http"] = "true" if self.allow_http else "false"
        return {k: v for k, v in options.items() if v is not None}


def build_settings(base: CacheSettings | None = None, **overrides: Any) -> CacheSettings:
    """Resolve settings from keyword overrides on top of ``base`` (or the environment).

    Raises:
        ConfigurationError: unknown setting names or invalid values
    """
    unknown = sorted(set(overrides) - set(CacheSettings.model_fields))
    if unknown:
        raise ConfigurationError(
            f"Unknown cache setting(s): {', '.join(unknown)}",
            details={"unknown": unknown},
        )

    try:
        if base is None:
            return CacheSettings(**overrides)
        if not overrides:
            return base
        return CacheSettings(**{**base.model_dump(), **overrides})
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid cache configuration: {e.error_count()} error(s)",
            details={"errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
        ) from e


@lru_cache
def get_settings() -> CacheSettings:
    """Get cached settings instance."""
    return build_settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
