"""Sample library used to populate an empty catalog."""

from __future__ import annotations

import re

SAMPLE_GAMES: list[tuple[str, list[str]]] = [
    ("Hades", ["steam", "epic"]),
    ("Outer Wilds", ["steam"]),
    ("Disco Elysium", ["steam", "gog"]),
    ("Hollow Knight", ["steam", "gog"]),
    ("Celeste", ["steam"]),
    ("Portal 2", ["steam"]),
    ("Stardew Valley", ["steam", "gog"]),
    ("Slay the Spire", ["steam"]),
    ("Subnautica", ["steam", "epic"]),
    ("It Takes Two", ["steam"]),
    ("Ori and the Will of the Wisps", ["steam"]),
    ("Control", ["steam", "epic", "gog"]),
]


def sample_id(title: str) -> str:
    """Build a stable ``sample:`` id from a title.

    Example:
        >>> sample_id("Ori and the Will of the Wisps")
        'sample:ori-and-the-will-of-the-wisps'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return f"sample:{slug}"
