"""Exception hierarchy for the search engine.

Disabled or unavailable backends are not errors: they are reported through
the `disabled`/`failed` result variants in `game_search.models`. Exceptions
are reserved for conditions the caller has to decide about.
"""

from __future__ import annotations


class GameSearchError(Exception):
    """Base class for all search engine errors."""


class VectorIndexError(GameSearchError):
    """A vector store request failed.

    Attributes:
        status_code: HTTP status returned by the store, if a response was received
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CollectionConfigError(VectorIndexError):
    """The collection exists with a vector size the active model does not produce.

    Retrying cannot fix this; the embedding model or the collection has to change.
    """

    def __init__(self, collection: str, existing_size: int, requested_size: int) -> None:
        self.collection = collection
        self.existing_size = existing_size
        self.requested_size = requested_size
        super().__init__(
            f"Qdrant collection '{collection}' has vector size {existing_size}, "
            f"expected {requested_size}. Use a consistent embeddings model "
            f"(or recreate the collection)."
        )
