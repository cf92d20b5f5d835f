"""SQLite record store for game entries."""

from __future__ import annotations

import json
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from game_search.models import GameRecord, GameUpsert

MAX_LIMIT = 200

_COLUMNS = "id, title, summary, cover_url, stores_json"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    summary TEXT,
    cover_url TEXT,
    stores_json TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_games_title ON games(title);
CREATE INDEX IF NOT EXISTS idx_games_updated_at ON games(updated_at);
"""


def _clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_LIMIT))


def escape_like(query: str) -> str:
    """Escape LIKE wildcards so the query matches literally (escape char is ``\\``)."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_game(row: sqlite3.Row) -> GameRecord:
    return GameRecord(
        id=row["id"],
        title=row["title"],
        summary=row["summary"],
        cover_url=row["cover_url"],
        stores=json.loads(row["stores_json"]),
    )


class GameStore:
    """Games table backed by a single SQLite file.

    Each operation opens its own connection, so one store can be shared by
    concurrent requests.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(_SCHEMA)
        logger.debug(f"Opened game store at {self.path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM games").fetchone()
        return int(row["count"] or 0)

    def list_recent(self, limit: int) -> list[GameRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM games "
                "ORDER BY updated_at DESC, rowid DESC LIMIT ?",
                (_clamp_limit(limit),),
            ).fetchall()
        return [_row_to_game(row) for row in rows]

    def get_by_id(self, game_id: str) -> GameRecord | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM games WHERE id = ?", (game_id,)).fetchone()
        return _row_to_game(row) if row else None

    def get_by_ids(self, game_ids: list[str]) -> list[GameRecord]:
        """Return records in the order of `game_ids`, skipping unknown ids."""
        if not game_ids:
            return []

        placeholders = ",".join("?" for _ in game_ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM games WHERE id IN ({placeholders})", game_ids
            ).fetchall()

        by_id = {row["id"]: _row_to_game(row) for row in rows}
        return [by_id[game_id] for game_id in game_ids if game_id in by_id]

    def upsert(self, record: GameUpsert) -> GameRecord:
        """Insert or update a game.

        `created_at` survives updates. When `record.stores` is None the
        existing record's stores are kept.
        """
        now = time.time_ns()
        existing = self.get_by_id(record.id)
        if record.stores is not None:
            stores = record.stores
        elif existing is not None:
            stores = existing.stores
        else:
            stores = []
        stores = list(dict.fromkeys(tag for tag in stores if tag))

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO games
                    (id, title, summary, cover_url, stores_json, created_at, updated_at)
                VALUES (:id, :title, :summary, :cover_url, :stores_json, :created_at, :updated_at)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    summary = excluded.summary,
                    cover_url = excluded.cover_url,
                    stores_json = excluded.stores_json,
                    updated_at = excluded.updated_at
                """,
                {
                    "id": record.id,
                    "title": record.title,
                    "summary": record.summary,
                    "cover_url": record.cover_url,
                    "stores_json": json.dumps(stores),
                    "created_at": now,
                    "updated_at": now,
                },
            )

        stored = self.get_by_id(record.id)
        if stored is None:  # pragma: no cover - the row was just written
            raise RuntimeError(f"Game {record.id!r} vanished after upsert")
        return stored

    def keyword_search(self, query: str, limit: int) -> list[GameRecord]:
        pattern = f"%{escape_like(query)}%"
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM games "
                "WHERE title LIKE :q ESCAPE '\\' OR summary LIKE :q ESCAPE '\\' "
                "ORDER BY updated_at DESC, rowid DESC LIMIT :limit",
                {"q": pattern, "limit": _clamp_limit(limit)},
            ).fetchall()
        return [_row_to_game(row) for row in rows]

    def iter_all(self, batch_size: int = 200) -> Iterator[GameRecord]:
        """Yield every game ordered by id, `batch_size` rows per query."""
        last_id = ""
        while True:
            with self._connect() as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM games WHERE id > ? ORDER BY id LIMIT ?",
                    (last_id, max(1, batch_size)),
                ).fetchall()
            if not rows:
                return
            for row in rows:
                yield _row_to_game(row)
            last_id = rows[-1]["id"]
