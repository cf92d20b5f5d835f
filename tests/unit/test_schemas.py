"""Unit tests for request body parsing."""

import pytest

from wanna2play.schemas import PayloadError, parse_game_upsert


class TestParseGameUpsert:
    def test_full_body(self):
        upsert = parse_game_upsert(
            {
                "id": "steam:440",
                "title": "  Team Fortress 2 ",
                "summary": "Shooter",
                "coverUrl": "https://cdn/440.jpg",
                "stores": ["steam", 7, None, "gog"],
            }
        )

        assert upsert.id == "steam:440"
        assert upsert.title == "Team Fortress 2"
        assert upsert.summary == "Shooter"
        assert upsert.cover_url == "https://cdn/440.jpg"
        assert upsert.stores == ["steam", "gog"]

    def test_missing_id_gets_custom_uuid(self):
        first = parse_game_upsert({"title": "Homebrew"})
        second = parse_game_upsert({"id": "   ", "title": "Homebrew"})

        assert first.id.startswith("custom:")
        assert second.id.startswith("custom:")
        assert first.id != second.id

    def test_wrong_types_are_dropped(self):
        upsert = parse_game_upsert(
            {"title": "Celeste", "summary": 3, "coverUrl": ["x"], "stores": "steam"}
        )

        assert upsert.summary is None
        assert upsert.cover_url is None
        assert upsert.stores == []

    @pytest.mark.parametrize("body", [None, [], "title", 42])
    def test_non_object_body(self, body):
        with pytest.raises(PayloadError, match="Invalid body."):
            parse_game_upsert(body)

    @pytest.mark.parametrize("title", [None, "", "   ", 12])
    def test_title_required(self, title):
        with pytest.raises(PayloadError, match="`title` is required."):
            parse_game_upsert({"id": "steam:1", "title": title})
