"""Tests for the HTTP API."""

import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from game_search.config import GameSearchConfig
from game_search.models import GameUpsert
from game_search.point_ids import derive_point_id
from wanna2play.api import create_app
from wanna2play.db import GameStore
from wanna2play.seed import SAMPLE_GAMES, sample_id


@pytest.fixture
def store(tmp_path) -> GameStore:
    return GameStore(tmp_path / "games.sqlite")


@pytest.fixture
def index(memory_index):
    return memory_index()


@pytest.fixture
def client(store, concept_embedder, index):
    app = create_app(GameSearchConfig(), store=store, embedder=concept_embedder(), index=index)
    with TestClient(app) as test_client:
        yield test_client


class TestGames:
    def test_create_and_fetch(self, client, index):
        response = client.post(
            "/api/games",
            json={
                "id": "steam:1145360",
                "title": "Hades",
                "summary": "Escape the underworld",
                "coverUrl": "https://cdn/hades.jpg",
                "stores": ["steam"],
            },
        )

        assert response.status_code == 201
        assert response.json() == {
            "id": "steam:1145360",
            "title": "Hades",
            "summary": "Escape the underworld",
            "coverUrl": "https://cdn/hades.jpg",
            "stores": ["steam"],
        }
        assert client.get("/api/games/steam:1145360").json()["title"] == "Hades"
        # Background indexing has run by the time the test client returns.
        assert derive_point_id("steam:1145360") in index.points

    def test_create_without_id(self, client):
        response = client.post("/api/games", json={"title": "Homebrew"})

        assert response.status_code == 201
        assert response.json()["id"].startswith("custom:")

    def test_invalid_json(self, client):
        response = client.post(
            "/api/games", content="{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body."}

    def test_body_must_be_object(self, client):
        response = client.post("/api/games", json=["Hades"])

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid body."}

    def test_title_required(self, client):
        response = client.post("/api/games", json={"id": "steam:1", "title": "  "})

        assert response.status_code == 400
        assert response.json() == {"error": "`title` is required."}

    def test_unknown_game(self, client):
        response = client.get("/api/games/steam:0")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found."}

    def test_list_games_newest_first(self, client):
        for title in ("One", "Two", "Three"):
            client.post("/api/games", json={"id": f"a:{title}", "title": title})

        response = client.get("/api/games", params={"limit": 2})

        assert [game["id"] for game in response.json()["results"]] == ["a:Three", "a:Two"]

    def test_write_succeeds_when_index_fails(self, store, concept_embedder, memory_index):
        app = create_app(
            GameSearchConfig(),
            store=store,
            embedder=concept_embedder(),
            index=memory_index(fail=True),
        )
        with TestClient(app) as client:
            response = client.post("/api/games", json={"id": "gog:1", "title": "Control"})

        assert response.status_code == 201
        assert store.get_by_id("gog:1").title == "Control"


class TestSearch:
    def test_semantic_search(self, client):
        client.post(
            "/api/games",
            json={"id": "steam:1145360", "title": "Hades", "summary": "A roguelike"},
        )
        client.post("/api/games", json={"id": "steam:413150", "title": "Stardew Valley"})

        response = client.get("/api/search", params={"q": "underworld escape"})

        body = response.json()
        assert body["mode"] == "semantic"
        assert body["query"] == "underworld escape"
        assert [game["id"] for game in body["results"]] == ["steam:1145360"]

    def test_empty_query_lists_library(self, client):
        client.post("/api/games", json={"id": "a:1", "title": "Celeste"})

        body = client.get("/api/search").json()

        assert body == {
            "mode": "keyword",
            "query": "",
            "results": [
                {"id": "a:1", "title": "Celeste", "summary": None, "coverUrl": None, "stores": []}
            ],
        }

    def test_keyword_fallback_when_provider_disabled(self, store, concept_embedder, memory_index):
        app = create_app(
            GameSearchConfig(),
            store=store,
            embedder=concept_embedder(enabled=False),
            index=memory_index(),
        )
        with TestClient(app) as client:
            client.post("/api/games", json={"id": "a:1", "title": "Hades"})
            body = client.get("/api/search", params={"q": "hade"}).json()

        assert body["mode"] == "keyword"
        assert [game["id"] for game in body["results"]] == ["a:1"]


class TestHealth:
    def test_health_report(self, client, store):
        body = client.get("/api/health").json()

        assert body == {
            "ok": True,
            "sqlite": {"path": str(store.path)},
            "qdrant": {
                "url": "http://qdrant.test",
                "collection": "games",
                "ready": True,
                "configError": None,
            },
            "embedding": {"provider": "ollama", "baseUrl": "", "model": "nomic-embed-text"},
        }

    def test_health_reports_collection_mismatch(self, client, index):
        index.config_error = "Qdrant collection 'games' has vector size 384, expected 768."

        body = client.get("/api/health").json()

        assert body["ok"] is True
        assert body["qdrant"]["configError"].startswith("Qdrant collection 'games'")


class TestSeed:
    def test_seed_empty_library(self, client, store, index):
        response = client.post("/api/seed")

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "inserted": len(SAMPLE_GAMES),
            "embedded": len(SAMPLE_GAMES),
        }
        assert store.count() == len(SAMPLE_GAMES)
        assert store.get_by_id(sample_id("Hades")).stores == ["steam", "epic"]
        assert len(index.points) == len(SAMPLE_GAMES)

    def test_seed_refused_when_not_empty(self, client, store):
        client.post("/api/games", json={"id": "a:1", "title": "Celeste"})

        response = client.post("/api/seed")

        assert response.status_code == 409
        assert response.json() == {"error": "Seed refused because the library is not empty."}
        assert store.count() == 1

    def test_seed_without_embeddings(self, store, concept_embedder, memory_index):
        app = create_app(
            GameSearchConfig(),
            store=store,
            embedder=concept_embedder(enabled=False),
            index=memory_index(),
        )
        with TestClient(app) as client:
            body = client.post("/api/seed").json()

        assert body["inserted"] == len(SAMPLE_GAMES)
        assert body["embedded"] == 0


class SlowStore(GameStore):
    """Store whose lookups block the calling thread."""

    delay = 0.3

    def get_by_id(self, game_id):
        time.sleep(self.delay)
        return super().get_by_id(game_id)

    def keyword_search(self, query, limit):
        time.sleep(self.delay)
        return super().keyword_search(query, limit)


class TestConcurrency:
    """Blocking store calls must not serialize independent requests."""

    @pytest.fixture
    def slow_app(self, tmp_path, concept_embedder, memory_index):
        store = SlowStore(tmp_path / "games.sqlite")
        for n in range(4):
            store.upsert(GameUpsert(id=f"steam:{n}", title=f"Game {n}"))
        return create_app(
            GameSearchConfig(),
            store=store,
            embedder=concept_embedder(enabled=False),
            index=memory_index(),
        )

    async def _gather(self, app, paths):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            started = time.perf_counter()
            responses = await asyncio.gather(*(client.get(path) for path in paths))
            return responses, time.perf_counter() - started

    @pytest.mark.asyncio
    async def test_concurrent_game_lookups_overlap(self, slow_app):
        paths = [f"/api/games/steam:{n}" for n in range(4)]
        responses, elapsed = await self._gather(slow_app, paths)

        assert [r.json()["id"] for r in responses] == [f"steam:{n}" for n in range(4)]
        assert elapsed < 2 * SlowStore.delay

    @pytest.mark.asyncio
    async def test_concurrent_searches_overlap(self, slow_app):
        responses, elapsed = await self._gather(
            slow_app, [f"/api/search?q=game {n}" for n in range(4)]
        )

        assert all(r.json()["mode"] == "keyword" for r in responses)
        assert [r.json()["results"][0]["id"] for r in responses] == [
            f"steam:{n}" for n in range(4)
        ]
        assert elapsed < 2 * SlowStore.delay
