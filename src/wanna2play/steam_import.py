"""Import a Steam library into a running wanna2play instance.

Owned games are fetched from the Steam Web API and written through the app's
``POST /api/games`` endpoint, so they are indexed exactly like manual entries.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel

STEAM_API_URL = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
STEAM_CDN_URL = "https://cdn.cloudflare.steamstatic.com/steam/apps"
PROGRESS_EVERY = 25

T = TypeVar("T")
R = TypeVar("R")


class OwnedGame(BaseModel):
    """A game from the Steam owned-games listing."""

    appid: int
    name: str
    playtime_forever: int | None = None

    @property
    def game_id(self) -> str:
        return f"steam:{self.appid}"

    @property
    def cover_url(self) -> str:
        # Most titles have this library cover; the UI shows a placeholder when it 404s.
        return f"{STEAM_CDN_URL}/{self.appid}/library_600x900.jpg"

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.game_id,
            "title": self.name,
            "coverUrl": self.cover_url,
            "stores": ["steam"],
        }


class ImportSummary(BaseModel):
    total: int = 0
    imported: int = 0
    failed: int = 0


def parse_owned_games(data: Any) -> list[OwnedGame]:
    """Extract valid games from a GetOwnedGames response.

    Entries without an integer appid or a non-blank name are dropped.
    """
    response = data.get("response") if isinstance(data, dict) else None
    games = response.get("games") if isinstance(response, dict) else None
    if not isinstance(games, list):
        return []

    owned: list[OwnedGame] = []
    for game in games:
        if not isinstance(game, dict):
            continue
        appid = game.get("appid")
        name = game.get("name")
        if isinstance(appid, bool) or not isinstance(appid, int) or not appid:
            continue
        if not isinstance(name, str) or not name.strip():
            continue
        playtime = game.get("playtime_forever")
        owned.append(
            OwnedGame(
                appid=appid,
                name=name.strip(),
                playtime_forever=playtime if isinstance(playtime, int) else None,
            )
        )
    return owned


async def fetch_owned_games(
    client: httpx.AsyncClient, api_key: str, steam_id: str
) -> list[OwnedGame]:
    """Fetch the owned games of a Steam account.

    Raises:
        httpx.HTTPStatusError: If the Steam API rejects the request
    """
    response = await client.get(
        STEAM_API_URL,
        params={
            "key": api_key,
            "steamid": steam_id,
            "include_appinfo": "1",
            "include_played_free_games": "1",
            "format": "json",
        },
    )
    response.raise_for_status()
    return parse_owned_games(response.json())


async def wait_for_app(
    client: httpx.AsyncClient, app_url: str, tries: int = 60, delay_seconds: float = 1.0
) -> None:
    """Poll the app's health endpoint until it answers.

    Raises:
        RuntimeError: If the app is still unreachable after `tries` attempts
    """
    for _ in range(tries):
        try:
            response = await client.get(f"{app_url}/api/health")
            if response.is_success:
                return
        except httpx.HTTPError:
            pass
        await asyncio.sleep(delay_seconds)

    raise RuntimeError(f"App is not reachable at {app_url} after {tries} attempts")


async def run_pool(
    items: Sequence[T], concurrency: int, worker: Callable[[T, int], Awaitable[R]]
) -> list[R]:
    """Run `worker` over `items` with at most `concurrency` calls in flight.

    Results are returned in input order.
    """
    results: list[R | None] = [None] * len(items)
    next_index = 0

    async def drain() -> None:
        nonlocal next_index
        while next_index < len(items):
            current = next_index
            next_index += 1
            results[current] = await worker(items[current], current)

    await asyncio.gather(*(drain() for _ in range(max(1, concurrency))))
    return results  # type: ignore[return-value]


async def import_steam_library(
    api_key: str,
    steam_id: str,
    app_url: str,
    concurrency: int = 4,
    *,
    health_tries: int = 60,
    timeout_seconds: float = 30.0,
) -> ImportSummary:
    """Fetch a Steam library and upsert every game into the app.

    Args:
        api_key: Steam Web API key
        steam_id: 64-bit Steam id of the account
        app_url: Base URL of the wanna2play app
        concurrency: Parallel upserts
        health_tries: Seconds to wait for the app to come up
        timeout_seconds: Per-request timeout

    Returns:
        Counts of imported and failed games
    """
    app_url = app_url.strip().rstrip("/")
    logger.info(f"[steam-import] app: {app_url}")
    logger.info(f"[steam-import] fetching owned games for steamid: {steam_id}")

    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        await wait_for_app(client, app_url, tries=health_tries)

        owned = await fetch_owned_games(client, api_key, steam_id)
        logger.info(f"[steam-import] fetched: {len(owned)} games")

        summary = ImportSummary(total=len(owned))

        async def upsert(game: OwnedGame, idx: int) -> bool:
            try:
                response = await client.post(f"{app_url}/api/games", json=game.to_payload())
                response.raise_for_status()
                summary.imported += 1
                ok = True
            except httpx.HTTPError as e:
                summary.failed += 1
                logger.error(f"[steam-import] failed ({game.game_id}): {e}")
                ok = False

            done = idx + 1
            if done % PROGRESS_EVERY == 0 or done == len(owned):
                logger.info(
                    f"[steam-import] progress: {done}/{len(owned)} "
                    f"(ok={summary.imported}, fail={summary.failed})"
                )
            return ok

        await run_pool(owned, concurrency, upsert)

    logger.info(f"[steam-import] done (ok={summary.imported}, fail={summary.failed})")
    return summary
