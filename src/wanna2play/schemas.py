"""Request parsing for the HTTP API.

Game writes come from the UI and from importers, so parsing is lenient:
wrongly typed optional fields are dropped rather than rejected. Only a
missing title is an error.
"""

from __future__ import annotations

import uuid
from typing import Any

from game_search.models import GameUpsert


class PayloadError(ValueError):
    """A request body cannot be turned into a write."""


def parse_game_upsert(body: Any) -> GameUpsert:
    """Normalize a decoded JSON body into a `GameUpsert`.

    Args:
        body: Decoded JSON value

    Returns:
        Upsert input; ``id`` defaults to ``custom:<uuid4>``

    Raises:
        PayloadError: If the body is not an object or has no usable title
    """
    if not isinstance(body, dict):
        raise PayloadError("Invalid body.")

    raw_title = body.get("title")
    title = raw_title.strip() if isinstance(raw_title, str) else ""
    if not title:
        raise PayloadError("`title` is required.")

    raw_id = body.get("id")
    game_id = raw_id.strip() if isinstance(raw_id, str) and raw_id.strip() else None
    if game_id is None:
        game_id = f"custom:{uuid.uuid4()}"

    raw_stores = body.get("stores")
    stores = (
        [store for store in raw_stores if isinstance(store, str)]
        if isinstance(raw_stores, list)
        else []
    )
    summary = body.get("summary")
    cover_url = body.get("coverUrl")

    return GameUpsert(
        id=game_id,
        title=title,
        summary=summary if isinstance(summary, str) else None,
        cover_url=cover_url if isinstance(cover_url, str) else None,
        stores=stores,
    )
