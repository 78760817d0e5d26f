# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Cache data models.

A ``CacheRecord`` is the row stored in LanceDB. Its ``id`` is the original
key text (no hashing), so ``id == text`` always holds.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CacheRecord(BaseModel):
    """One cached entry: key text, payload and the key's embedding."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    value: str
    vector: list[float] = Field(..., min_length=1)

    @model_validator(mode="after")
    def id_matches_text(self) -> "CacheRecord":
        if self.id != self.text:
            raise ValueError("CacheRecord.id must equal CacheRecord.text")
        return self

    @classmethod
    def from_entry(cls, key: str, value: str, vector: list[float]) -> "CacheRecord":
        """Build a record for ``key`` -> ``value``."""
        return cls(id=key, text=key, value=value, vector=vector)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CacheRecord":
        """Build a record from a LanceDB result row (extra columns such as _distance are ignored)."""
        return cls(
            id=row["id"],
            text=row["text"],
            value=row["value"],
            vector=[float(v) for v in row["vector"]],
        )

    def to_row(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "value": self.value, "vector": list(self.vector)}

    @property
    def dim(self) -> int:
        return len(self.vector)


class SearchResult(BaseModel):
    """A nearest-neighbor candidate annotated with locally computed cosine similarity."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    value: str
    similarity: float


class CacheLookup(BaseModel):
    """Outcome of a single gated lookup.

    ``value`` is set only on a hit. On an operational failure ``error`` holds
    the original error message and the lookup counts as a miss.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    value: str | None = None
    similarity: float | None = None
    matched_key: str | None = None
    error: str | None = None

    @property
    def hit(self) -> bool:
        return self.value is not None

    @property
    def failed(self) -> bool:
        return self.error is not None
