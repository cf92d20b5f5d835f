"""Pytest configuration for test discovery, env, and fixtures.

This file ensures that:
- `src/` is importable
- Tests never pick up embedding/Qdrant settings from the developer's shell
- Engine collaborators can be replaced by in-memory stand-ins
"""

from __future__ import annotations

import math
import re
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from game_search.errors import VectorIndexError  # noqa: E402
from game_search.models import EmbeddingResult, SimilarityResult  # noqa: E402
from game_search.point_ids import derive_point_id  # noqa: E402

_ENV_VARS = (
    "OLLAMA_BASE_URL",
    "OLLAMA_EMBED_MODEL",
    "OPENAI_API_KEY",
    "QDRANT_URL",
    "QDRANT_COLLECTION",
    "QDRANT_API_KEY",
    "SQLITE_PATH",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class ConceptEmbedder:
    """Embeds text as counts of known concept words.

    Words mapped to the same dimension count as synonyms, which is enough to
    make "underworld escape" land near "Hades roguelike".
    """

    def __init__(self, concepts: dict[str, int], dims: int = 8, enabled: bool = True):
        self.concepts = concepts
        self.dims = dims
        self._enabled = enabled
        self.calls: list[str] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        if not self._enabled:
            return EmbeddingResult.disabled()
        vector = [0.0] * self.dims
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            if word in self.concepts:
                vector[self.concepts[word]] += 1.0
        return EmbeddingResult.ok(vector)

    async def aclose(self) -> None:
        pass


class FailingEmbedder(ConceptEmbedder):
    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        return EmbeddingResult.failed("provider down")


class MemoryIndex:
    """In-memory stand-in for `QdrantIndex` ranking points by cosine similarity."""

    def __init__(self, collection: str = "games", fail: bool = False):
        self.url = "http://qdrant.test"
        self.collection = collection
        self.config_error: str | None = None
        self.fail = fail
        self.points: dict[str, tuple[str, list[float]]] = {}
        self.upserts = 0

    @property
    def enabled(self) -> bool:
        return bool(self.collection)

    async def upsert_vector(self, game_id: str, vector: list[float]) -> bool:
        if not self.enabled:
            return False
        if self.fail:
            raise VectorIndexError("Qdrant upsert failed (HTTP 500).", status_code=500)
        self.upserts += 1
        self.points[derive_point_id(game_id)] = (game_id, vector)
        return True

    async def search_similar(self, vector: list[float], limit: int) -> SimilarityResult:
        if not self.enabled:
            return SimilarityResult.disabled()
        if self.fail:
            return SimilarityResult.failed("HTTP 500")

        def cosine(a: list[float], b: list[float]) -> float:
            norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
            return sum(x * y for x, y in zip(a, b, strict=True)) / norm if norm else 0.0

        scored = [(cosine(vector, stored), game_id) for game_id, stored in self.points.values()]
        ranked = sorted((item for item in scored if item[0] > 0), reverse=True)
        return SimilarityResult.ok([game_id for _, game_id in ranked[:limit]])

    async def health_check(self) -> bool:
        return not self.fail

    async def aclose(self) -> None:
        pass


GAME_CONCEPTS = {
    "hades": 0,
    "underworld": 0,
    "hell": 0,
    "roguelike": 1,
    "escape": 1,
    "runs": 1,
    "farm": 2,
    "farming": 2,
    "stardew": 2,
    "space": 3,
    "ocean": 4,
    "subnautica": 4,
}


@pytest.fixture
def concept_embedder() -> Callable[..., ConceptEmbedder]:
    def factory(enabled: bool = True) -> ConceptEmbedder:
        return ConceptEmbedder(GAME_CONCEPTS, enabled=enabled)

    return factory


@pytest.fixture
def failing_embedder() -> FailingEmbedder:
    return FailingEmbedder(GAME_CONCEPTS)


@pytest.fixture
def memory_index() -> Callable[..., MemoryIndex]:
    return MemoryIndex
