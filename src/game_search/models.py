"""Pydantic models for the search engine's data structures.

Records entering the engine and results leaving it are validated against
these schemas. External call outcomes are modelled as result objects with an
explicit status so callers decide on fallback from data, not exceptions.
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GameRecord(BaseModel):
    """A game entry in the catalog.

    Attributes:
        id: Globally unique identifier of the form ``<source>:<native-id>``
        title: Display title (non-empty)
        summary: Optional free-text description
        cover_url: Optional cover image URL (``coverUrl`` on the wire)
        stores: Store tags the game is available on (e.g. "steam", "gog")
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1, examples=["steam:440"])
    title: str = Field(min_length=1, examples=["Team Fortress 2"])
    summary: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")
    stores: list[str] = Field(default_factory=list)

    @field_validator("stores")
    @classmethod
    def dedupe_stores(cls, v: list[str]) -> list[str]:
        """Drop empty tags and duplicates while keeping first-seen order."""
        return list(dict.fromkeys(tag for tag in v if tag))


class GameUpsert(BaseModel):
    """Write input for the record store.

    ``stores=None`` means "keep whatever the existing record has".
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    summary: str | None = None
    cover_url: str | None = Field(default=None, alias="coverUrl")
    stores: list[str] | None = None


class SearchMode(str, Enum):
    """Which retrieval path produced a result set."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"


class SearchResponse(BaseModel):
    """The externally observable result of a search."""

    mode: SearchMode
    query: str
    results: list[GameRecord] = Field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "mode": self.mode.value,
            "query": self.query,
            "results": [record.model_dump(by_alias=True) for record in self.results],
        }


class ResultStatus(str, Enum):
    """Outcome of a call to an external collaborator.

    ``disabled`` means the feature is switched off by configuration and no
    request was made; ``failed`` covers transport errors, timeouts, non-2xx
    responses and malformed payloads.
    """

    OK = "ok"
    DISABLED = "disabled"
    FAILED = "failed"


class EmbeddingResult(BaseModel):
    """Outcome of a single embedding request.

    Attributes:
        status: ok / disabled / failed
        vector: The embedding, only set when status is ok
        detail: Human-readable reason for a non-ok status
    """

    status: ResultStatus
    vector: list[float] | None = None
    detail: str | None = None

    @field_validator("vector")
    @classmethod
    def validate_vector_values(cls, v: list[float] | None) -> list[float] | None:
        """Ensure vector is non-empty and contains only finite floats."""
        if v is None:
            return v
        if not v:
            raise ValueError("Embedding vector must not be empty")
        for i, val in enumerate(v):
            if not math.isfinite(val):
                raise ValueError(f"Vector contains non-finite value at index {i}: {val}")
        return v

    @property
    def available(self) -> bool:
        return self.status is ResultStatus.OK and self.vector is not None

    @classmethod
    def ok(cls, vector: list[float]) -> EmbeddingResult:
        return cls(status=ResultStatus.OK, vector=vector)

    @classmethod
    def disabled(cls, detail: str = "embedding provider not configured") -> EmbeddingResult:
        return cls(status=ResultStatus.DISABLED, detail=detail)

    @classmethod
    def failed(cls, detail: str) -> EmbeddingResult:
        return cls(status=ResultStatus.FAILED, detail=detail)


class SimilarityResult(BaseModel):
    """Outcome of a nearest-neighbour query.

    Attributes:
        status: ok / disabled / failed
        ids: Application ids of the hits, most similar first
        detail: Human-readable reason for a non-ok status
    """

    status: ResultStatus
    ids: list[str] = Field(default_factory=list)
    detail: str | None = None

    @classmethod
    def ok(cls, ids: list[str]) -> SimilarityResult:
        return cls(status=ResultStatus.OK, ids=ids)

    @classmethod
    def disabled(cls, detail: str = "vector collection not configured") -> SimilarityResult:
        return cls(status=ResultStatus.DISABLED, detail=detail)

    @classmethod
    def failed(cls, detail: str) -> SimilarityResult:
        return cls(status=ResultStatus.FAILED, detail=detail)


class ReindexSummary(BaseModel):
    """Counts reported by a bulk re-index run."""

    total: int = Field(default=0, ge=0)
    indexed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
