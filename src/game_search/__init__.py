"""Hybrid search engine for the wanna2play game catalog.

This package provides embedding, vector indexing, and search orchestration
independent of the HTTP application. The `wanna2play` app consumes this
engine as a service layer and supplies the record store.

Architecture:
    - embedding: Provider-agnostic embedding client (Ollama, OpenAI)
    - index: Qdrant collection lifecycle and point upsert/search
    - point_ids: Deterministic application-id to point-id mapping
    - search: Semantic search with keyword fallback, best-effort indexing
    - models: Pydantic schemas for records, results and responses

Usage:
    >>> from game_search.search import SearchOrchestrator
    >>> orchestrator = SearchOrchestrator(store, embedder, index)
    >>> response = await orchestrator.search("roguelike in the underworld", limit=10)
"""

__version__ = "0.2.0"

from game_search.errors import CollectionConfigError, GameSearchError, VectorIndexError
from game_search.models import GameRecord, GameUpsert, SearchMode, SearchResponse

__all__ = [
    "GameRecord",
    "GameUpsert",
    "SearchMode",
    "SearchResponse",
    "GameSearchError",
    "VectorIndexError",
    "CollectionConfigError",
]
