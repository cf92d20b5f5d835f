"""Vector index management and search operations against Qdrant.

Provides:
- Collection lifecycle with vector-size consistency enforcement
- Single-point upsert with synchronous (``wait=true``) acknowledgement
- Nearest-neighbour search mapped back to application ids
- Health check

Qdrant's REST API is called directly over httpx; every request carries the
configured timeout.
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote

import httpx
from loguru import logger

from game_search.config import IndexConfig
from game_search.errors import CollectionConfigError, VectorIndexError
from game_search.models import SimilarityResult
from game_search.point_ids import derive_point_id


def _existing_vector_size(description: Any) -> int | None:
    """Pull ``result.config.params.vectors.size`` out of a collection description."""
    try:
        size = description["result"]["config"]["params"]["vectors"]["size"]
    except (KeyError, TypeError):
        return None
    if isinstance(size, bool) or not isinstance(size, int):
        return None
    return size


class VectorIndex(Protocol):
    """Protocol for vector index implementations."""

    url: str
    collection: str
    config_error: str | None

    @property
    def enabled(self) -> bool:
        """False when indexing is switched off."""
        ...

    async def upsert_vector(self, game_id: str, vector: list[float]) -> bool:
        """Store the vector for a game id; True once the write is acknowledged."""
        ...

    async def search_similar(self, vector: list[float], limit: int) -> SimilarityResult:
        """Game ids of the nearest neighbours, best first."""
        ...

    async def health_check(self) -> bool:
        """True if the backing service is reachable."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class QdrantIndex:
    """Qdrant collection client for game vectors.

    The collection's vector size is confirmed once per process and memoized
    on the instance. A race between two coroutines on a cache miss costs at
    most one extra describe call.
    """

    def __init__(self, config: IndexConfig, http_client: httpx.AsyncClient | None = None):
        """Initialize Qdrant collection client.

        Args:
            config: Index configuration (URL, collection name, timeout)
            http_client: Optional pre-built client (created from config otherwise)
        """
        self.config = config
        self.url = config.url.strip().rstrip("/")
        self.collection = config.collection.strip()
        self._confirmed_size: int | None = None
        self.config_error: str | None = None

        headers = {"content-type": "application/json"}
        if config.api_key:
            headers["api-key"] = config.api_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.url, headers=headers, timeout=config.timeout_seconds
        )

    @property
    def enabled(self) -> bool:
        """False when no collection is configured; every operation is then a no-op."""
        return bool(self.collection)

    @property
    def confirmed_size(self) -> int | None:
        return self._confirmed_size

    @property
    def _collection_path(self) -> str:
        return f"/collections/{quote(self.collection, safe='')}"

    async def ensure_collection(self, vector_size: int) -> None:
        """Make sure the collection exists with the given vector size.

        Args:
            vector_size: Dimensionality of the vectors about to be written or queried

        Raises:
            CollectionConfigError: If the collection exists with a different size
            VectorIndexError: If describing or creating the collection fails
            httpx.HTTPError: For transport failures
        """
        if not self.enabled:
            return
        if self._confirmed_size == vector_size:
            return

        response = await self._client.get(self._collection_path)

        if response.status_code == 404:
            await self._create_collection(vector_size)
            self._remember(vector_size)
            return

        if not response.is_success:
            raise VectorIndexError(
                f"Failed to describe Qdrant collection '{self.collection}' "
                f"(HTTP {response.status_code}).",
                status_code=response.status_code,
            )

        try:
            existing = _existing_vector_size(response.json())
        except ValueError:
            existing = None

        if existing is None:
            logger.warning(
                f"Could not read vector size of collection '{self.collection}'; "
                f"assuming {vector_size}"
            )
        elif existing != vector_size:
            error = CollectionConfigError(self.collection, existing, vector_size)
            self.config_error = str(error)
            raise error

        self._remember(vector_size)

    async def _create_collection(self, vector_size: int) -> None:
        logger.info(
            f"Creating Qdrant collection '{self.collection}' "
            f"(size={vector_size}, distance={self.config.distance})"
        )
        response = await self._client.put(
            self._collection_path,
            json={"vectors": {"size": vector_size, "distance": self.config.distance}},
        )
        if not response.is_success:
            raise VectorIndexError(
                f"Failed to create Qdrant collection '{self.collection}' "
                f"(HTTP {response.status_code}).",
                status_code=response.status_code,
            )

    def _remember(self, vector_size: int) -> None:
        self._confirmed_size = vector_size
        self.config_error = None

    async def upsert_vector(self, game_id: str, vector: list[float]) -> bool:
        """Insert or overwrite the point for a game.

        Args:
            game_id: Application id, kept in the payload
            vector: Embedding of the game's text

        Returns:
            True if a point was written, False if indexing is disabled

        Raises:
            CollectionConfigError: If the vector size does not match the collection
            VectorIndexError: If Qdrant rejects the upsert
            httpx.HTTPError: For transport failures
        """
        if not self.enabled:
            return False

        await self.ensure_collection(len(vector))

        response = await self._client.put(
            f"{self._collection_path}/points",
            params={"wait": "true"},
            json={
                "points": [
                    {
                        "id": derive_point_id(game_id),
                        "vector": vector,
                        "payload": {"id": game_id},
                    }
                ]
            },
        )
        if not response.is_success:
            raise VectorIndexError(
                f"Qdrant upsert failed (HTTP {response.status_code}).",
                status_code=response.status_code,
            )

        logger.debug(f"Upserted vector for {game_id} into '{self.collection}'")
        return True

    async def search_similar(self, vector: list[float], limit: int) -> SimilarityResult:
        """Find the games closest to a query vector.

        Args:
            vector: Query embedding
            limit: Maximum number of hits

        Returns:
            SimilarityResult with application ids, most similar first

        Raises:
            CollectionConfigError: If the vector size does not match the collection
        """
        if not self.enabled:
            return SimilarityResult.disabled()

        try:
            await self.ensure_collection(len(vector))
            response = await self._client.post(
                f"{self._collection_path}/points/search",
                json={"vector": vector, "limit": limit, "with_payload": True},
            )
        except CollectionConfigError:
            raise
        except (VectorIndexError, httpx.HTTPError) as e:
            logger.warning(f"Qdrant search unavailable: {e}")
            return SimilarityResult.failed(str(e))

        if not response.is_success:
            logger.warning(f"Qdrant search failed (HTTP {response.status_code})")
            return SimilarityResult.failed(f"HTTP {response.status_code}")

        try:
            hits = response.json().get("result")
        except (ValueError, AttributeError):
            hits = None
        if not isinstance(hits, list):
            logger.warning("Malformed Qdrant search response")
            return SimilarityResult.failed("malformed search response")

        return SimilarityResult.ok(self._hit_ids(hits))

    def _hit_ids(self, hits: list[Any]) -> list[str]:
        ids: list[str] = []
        for hit in hits:
            if not isinstance(hit, dict):
                continue
            payload = hit.get("payload")
            game_id = payload.get("id") if isinstance(payload, dict) else None
            if game_id is None:
                # Points are always written with the game id in the payload.
                logger.warning(
                    f"Point {hit.get('id')!r} in '{self.collection}' has no payload id"
                )
                game_id = hit.get("id")
            if game_id is None:
                continue
            game_id = str(game_id)
            if game_id:
                ids.append(game_id)
        return ids

    async def health_check(self) -> bool:
        """Check if Qdrant is reachable and ready.

        Returns:
            True if healthy, False otherwise
        """
        try:
            response = await self._client.get("/readyz")
        except httpx.HTTPError:
            return False
        return response.is_success

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
