"""Record store contract consumed by the search orchestrator.

The store is the source of truth for game records. The engine never touches
its storage directly; it only exchanges game ids and `GameRecord` objects
through this protocol.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from game_search.models import GameRecord, GameUpsert


class RecordStore(Protocol):
    """Protocol for record store implementations."""

    def upsert(self, record: GameUpsert) -> GameRecord:
        """Insert or update a record and return the stored version."""
        ...

    def get_by_id(self, game_id: str) -> GameRecord | None:
        """Return one record, or None if absent."""
        ...

    def get_by_ids(self, game_ids: list[str]) -> list[GameRecord]:
        """Return records in input order, dropping ids that are absent."""
        ...

    def keyword_search(self, query: str, limit: int) -> list[GameRecord]:
        """Substring match on title or summary, newest first."""
        ...

    def list_recent(self, limit: int) -> list[GameRecord]:
        """Most recently updated records, newest first."""
        ...

    def count(self) -> int:
        """Total number of records."""
        ...

    def iter_all(self, batch_size: int = 200) -> Iterator[GameRecord]:
        """Yield every record, fetching `batch_size` rows at a time."""
        ...
