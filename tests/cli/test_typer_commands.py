"""Tests for the anideck command line."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import orjson
import pytest
from dependency_injector import providers
from typer.testing import CliRunner

from anideck.cli.typer_app import app
from anideck.containers import container
from anideck.services.upstream_health import UpstreamHealthMonitor
from anideck.shared.models import Genre, MediaItem, MediaMode
from conftest import FakeCatalog, build_item, page_ids

runner = CliRunner()


class FakeJikanClient(FakeCatalog):
    """Offline stand-in for ``JikanClient`` used by the CLI runtime."""

    def __init__(self) -> None:
        super().__init__([page_ids(1, 10)])
        self.health = UpstreamHealthMonitor()

    async def get_by_id(self, mode: MediaMode, media_id: int) -> MediaItem | None:
        if media_id == 404:
            return None
        return build_item(media_id, genres=(1,), episodes=12)

    async def get_genres(self, mode: MediaMode) -> list[Genre]:
        return [Genre(mal_id=1, name="Action", count=5000), Genre(mal_id=4, name="Comedy", count=7000)]

    async def close(self) -> None:
        return None


@pytest.fixture(autouse=True)
def fake_client() -> Generator[FakeJikanClient, None, None]:
    client = FakeJikanClient()
    with container.jikan_client.override(providers.Object(client)):
        yield client


def json_payload(output: str) -> dict[str, Any]:
    return orjson.loads(output)


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "AniDeck v0.1.0" in result.stdout

    def test_missing_config_file_is_rejected(self) -> None:
        result = runner.invoke(app, ["--config", "nope.toml", "genres"])

        assert result.exit_code != 0


class TestDiscoverCommands:
    """discover, genres and swipe."""

    def test_discover_json(self, fake_client: FakeJikanClient) -> None:
        result = runner.invoke(app, ["discover", "--count", "4", "--genre", "1", "--json"])

        assert result.exit_code == 0
        payload = json_payload(result.stdout)
        assert payload["success"] is True
        assert payload["data"]["upstream"] == "normal"
        assert len(payload["data"]["items"]) == 4
        context, page = fake_client.calls[0]
        assert context.genres == (1,)
        assert page == 1

    def test_discover_table(self) -> None:
        result = runner.invoke(app, ["discover", "-n", "10"])

        assert result.exit_code == 0
        assert "Title 1" in result.stdout

    def test_discover_rejects_zero_count(self) -> None:
        result = runner.invoke(app, ["discover", "--count", "0"])

        assert result.exit_code != 0

    def test_genres_json(self) -> None:
        result = runner.invoke(app, ["genres", "--json"])

        assert result.exit_code == 0
        names = [genre["name"] for genre in json_payload(result.stdout)["data"]]
        assert names == ["Action", "Comedy"]

    def test_swipe_saves_likes(self) -> None:
        """A like is filed as planned; quitting ends the session."""
        result = runner.invoke(app, ["swipe", "--count", "3"], input="l\ns\nq\n")

        assert result.exit_code == 0
        assert "Liked 1, skipped 1." in result.stdout

        listing = runner.invoke(app, ["library", "list", "--json"])
        entries = json_payload(listing.stdout)["data"]["entries"]
        assert len(entries) == 1
        assert entries[0]["status"] == "planned"


class TestLibraryCommands:
    """library add, list, progress and remove."""

    def test_add_list_progress_remove(self) -> None:
        added = runner.invoke(app, ["library", "add", "21", "--status", "current", "--progress", "3"])
        assert added.exit_code == 0
        assert "Added Title 21 (21)" in added.stdout

        progressed = runner.invoke(app, ["library", "progress", "21", "--by", "20", "--json"])
        assert progressed.exit_code == 0
        entry = json_payload(progressed.stdout)["data"]
        assert entry["progress"] == 12
        assert entry["status"] == "completed"

        listing = runner.invoke(app, ["library", "list", "--json"])
        data = json_payload(listing.stdout)["data"]
        assert [e["mal_id"] for e in data["entries"]] == [21]
        assert data["top_genre"]["mal_id"] == 1

        removed = runner.invoke(app, ["library", "remove", "21"])
        assert removed.exit_code == 0
        assert runner.invoke(app, ["library", "remove", "21"]).exit_code == 1

    def test_add_unknown_title(self) -> None:
        result = runner.invoke(app, ["library", "add", "404"])

        assert result.exit_code == 1
        assert "No anime with id 404" in result.stdout

    def test_progress_on_missing_entry(self) -> None:
        result = runner.invoke(app, ["library", "progress", "5", "--by", "1"])

        assert result.exit_code == 1

    def test_empty_library(self) -> None:
        result = runner.invoke(app, ["library", "list", "--mode", "manga"])

        assert result.exit_code == 0
        assert "The library is empty." in result.stdout
