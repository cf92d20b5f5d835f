"""Mapping from application game ids to Qdrant point ids.

Qdrant only accepts unsigned integers or UUIDs as point identifiers, while
game ids look like ``steam:440``. The mapping below hashes the game id and
formats the first 16 bytes as a version-4 UUID. The version/variant bits are
set only so the value passes Qdrant's UUID validator; the result is neither
random nor meant to be secret. Determinism is the property callers rely on.
"""

from __future__ import annotations

import hashlib
import uuid


def derive_point_id(game_id: str) -> str:
    """Return the Qdrant point id for a game id.

    Args:
        game_id: Application identifier (e.g. "steam:440")

    Returns:
        Canonical UUID string, identical for identical inputs

    Example:
        >>> derive_point_id("steam:440") == derive_point_id("steam:440")
        True
    """
    digest = hashlib.sha256(game_id.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest[:16], version=4))
