"""Hybrid search: semantic retrieval with keyword fallback, plus best-effort indexing.

Query path:
1. Blank query -> most recently updated records (a listing, mode "keyword")
2. Embed the query; unavailable -> keyword search
3. Nearest neighbours from the vector index, resolved through the record store;
   non-empty -> mode "semantic"
4. Anything else -> keyword search (mode "keyword")

Write path: after the record store has accepted a write, embed title and
summary and upsert the vector. Failures are logged and discarded.

Record store calls are blocking and run in worker threads.
"""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from game_search.config import SearchConfig
from game_search.embedding import EmbeddingClient
from game_search.errors import CollectionConfigError, VectorIndexError
from game_search.index import VectorIndex
from game_search.models import (
    GameRecord,
    GameUpsert,
    ReindexSummary,
    SearchMode,
    SearchResponse,
)
from game_search.store import RecordStore


def compose_embedding_text(record: GameRecord) -> str:
    """Text used to embed a record: title, then summary after a blank line.

    Example:
        >>> record = GameRecord(id="steam:1145360", title="Hades", summary="roguelike")
        >>> compose_embedding_text(record)
        'Hades\\n\\nroguelike'
    """
    return "\n\n".join(part for part in (record.title, record.summary) if part)


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


class SearchOrchestrator:
    """Composes embedding client, vector index and record store.

    Handles both directions:
    1. search(): semantic first, keyword as the fallback that always answers
    2. index_record() / save(): keep the vector index in step with writes
    """

    def __init__(
        self,
        store: RecordStore,
        embedder: EmbeddingClient,
        index: VectorIndex,
        config: SearchConfig | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            store: Record store (source of truth)
            embedder: Client for generating embeddings
            index: Vector index client, shared for the life of the process
            config: Search limits (uses defaults if None)
        """
        self.store = store
        self.embedder = embedder
        self.index = index
        self.config = config or SearchConfig()

    async def search(self, query: str, limit: int | None = None) -> SearchResponse:
        """Answer a free-text query.

        Args:
            query: User query; surrounding whitespace is ignored
            limit: Maximum number of results (defaults to config.default_limit)

        Returns:
            SearchResponse whose mode reports which path produced the results
        """
        query = query.strip()
        if limit is None:
            limit = self.config.default_limit

        if not query:
            recent = await asyncio.to_thread(self.store.list_recent, limit)
            return SearchResponse(mode=SearchMode.KEYWORD, query=query, results=recent)

        results = await self._semantic_results(query, limit)
        if results:
            return SearchResponse(mode=SearchMode.SEMANTIC, query=query, results=results)

        matches = await asyncio.to_thread(self.store.keyword_search, query, limit)
        return SearchResponse(mode=SearchMode.KEYWORD, query=query, results=matches)

    async def _semantic_results(self, query: str, limit: int) -> list[GameRecord]:
        embedding = await self.embedder.embed(query)
        if not embedding.available or embedding.vector is None:
            logger.debug(f"Semantic search skipped ({embedding.status.value}): {embedding.detail}")
            return []

        fan_out = clamp(limit, 1, self.config.semantic_limit_max)
        try:
            similar = await self.index.search_similar(embedding.vector, fan_out)
        except CollectionConfigError as e:
            logger.error(f"Semantic search disabled by collection mismatch: {e}")
            return []
        except (VectorIndexError, httpx.HTTPError) as e:
            logger.warning(f"Semantic search failed: {e}")
            return []

        if not similar.ids:
            logger.debug(f"No semantic hits for {query!r} ({similar.status.value})")
            return []

        try:
            return await asyncio.to_thread(self.store.get_by_ids, similar.ids)
        except Exception as e:
            logger.warning(f"Resolving semantic hits failed: {e}")
            return []

    async def index_record(self, record: GameRecord) -> bool:
        """Embed and index a record, best-effort.

        Args:
            record: Record that has already been written to the store

        Returns:
            True if a vector point was written, False otherwise
        """
        try:
            embedding = await self.embedder.embed(compose_embedding_text(record))
            if not embedding.available or embedding.vector is None:
                return False
            return await self.index.upsert_vector(record.id, embedding.vector)
        except CollectionConfigError as e:
            logger.error(f"Not indexing {record.id}: {e}")
        except Exception as e:
            logger.warning(f"Indexing {record.id} failed: {e}")
        return False

    async def save(self, upsert: GameUpsert) -> GameRecord:
        """Write a record and index it.

        The returned record depends only on the store; indexing failures are
        invisible to the caller.
        """
        record = await asyncio.to_thread(self.store.upsert, upsert)
        await self.index_record(record)
        return record

    async def reindex(self, batch_size: int = 200) -> ReindexSummary:
        """Re-index every record in the store.

        Args:
            batch_size: Rows fetched from the store per round trip

        Returns:
            Counts of records seen, indexed and skipped
        """
        summary = ReindexSummary()
        records = self.store.iter_all(batch_size=batch_size)
        while (record := await asyncio.to_thread(next, records, None)) is not None:
            summary.total += 1
            if await self.index_record(record):
                summary.indexed += 1
            else:
                summary.skipped += 1
            if summary.total % 100 == 0:
                logger.info(f"Re-indexed {summary.indexed}/{summary.total} records")

        logger.info(
            f"Re-index finished: total={summary.total}, indexed={summary.indexed}, "
            f"skipped={summary.skipped}"
        )
        return summary
