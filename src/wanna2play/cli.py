"""Command-line entry point: serve the app, search, re-index, import from Steam."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
import httpx
from loguru import logger

from game_search.config import GameSearchConfig, load_config
from game_search.embedding import create_embedding_client
from game_search.index import QdrantIndex
from game_search.models import ReindexSummary, SearchResponse
from game_search.search import SearchOrchestrator

from . import __version__
from .db import GameStore
from .steam_import import import_steam_library


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>",
    )


def _load(ctx: click.Context) -> GameSearchConfig:
    obj = ctx.ensure_object(dict)
    return load_config(
        obj.get("config_name", "default"),
        config_path=obj.get("config_dir"),
        overrides=list(obj.get("overrides", ())),
    )


def _orchestrator(config: GameSearchConfig) -> SearchOrchestrator:
    return SearchOrchestrator(
        GameStore(config.store.sqlite_path),
        create_embedding_client(config.embedding),
        QdrantIndex(config.index),
        config.search,
    )


async def _close(orchestrator: SearchOrchestrator) -> None:
    await orchestrator.embedder.aclose()
    await orchestrator.index.aclose()


@click.group()
@click.version_option(__version__, prog_name="wanna2play")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the YAML config (default: conf/game_search)",
)
@click.option("--config-name", default="default", show_default=True, help="Config file name")
@click.option("--set", "overrides", multiple=True, help="Config override, e.g. index.collection=x")
@click.option("--log-level", default="INFO", show_default=True)
@click.pass_context
def main(
    ctx: click.Context,
    config_dir: Path | None,
    config_name: str,
    overrides: tuple[str, ...],
    log_level: str,
) -> None:
    """wanna2play game catalog."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj.update(config_dir=config_dir, config_name=config_name, overrides=overrides)


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=3000, show_default=True, type=int)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the HTTP API."""
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(_load(ctx)), host=host, port=port)


@main.command()
@click.argument("query", default="")
@click.option("--limit", default=10, show_default=True, type=int)
@click.pass_context
def search(ctx: click.Context, query: str, limit: int) -> None:
    """Search the catalog and print matching titles."""

    async def run() -> SearchResponse:
        orchestrator = _orchestrator(_load(ctx))
        try:
            return await orchestrator.search(query, limit)
        finally:
            await _close(orchestrator)

    response = asyncio.run(run())
    click.echo(f"mode: {response.mode.value} ({len(response.results)} results)")
    for game in response.results:
        click.echo(f"  {game.id}\t{game.title}")


@main.command()
@click.option("--batch-size", default=200, show_default=True, type=int)
@click.pass_context
def reindex(ctx: click.Context, batch_size: int) -> None:
    """Re-embed every record and upsert it into the vector index."""

    async def run() -> ReindexSummary:
        orchestrator = _orchestrator(_load(ctx))
        try:
            if not orchestrator.embedder.enabled:
                logger.warning("Embedding provider is not configured; nothing will be indexed")
            return await orchestrator.reindex(batch_size=batch_size)
        finally:
            await _close(orchestrator)

    summary = asyncio.run(run())
    click.echo(f"indexed {summary.indexed}/{summary.total} (skipped {summary.skipped})")


@main.command("import-steam")
@click.option("--api-key", envvar="STEAM_API_KEY", required=True, help="Steam Web API key")
@click.option("--steam-id", envvar="STEAM_ID", required=True, help="64-bit Steam id")
@click.option(
    "--app-url", envvar="WANNA2PLAY_APP_URL", default="http://app:3000", show_default=True
)
@click.option("--concurrency", envvar="IMPORT_CONCURRENCY", default=4, show_default=True, type=int)
def import_steam(api_key: str, steam_id: str, app_url: str, concurrency: int) -> None:
    """Import the owned games of a Steam account through the HTTP API."""
    try:
        summary = asyncio.run(import_steam_library(api_key, steam_id, app_url, concurrency))
    except (httpx.HTTPError, RuntimeError) as e:
        logger.error(f"[steam-import] fatal: {e}")
        sys.exit(1)

    if summary.failed > 0:
        sys.exit(2)


if __name__ == "__main__":
    main()
