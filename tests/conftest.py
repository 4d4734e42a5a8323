"""Shared fixtures for the test suite."""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from plexdigest.config import reset_config
from plexdigest.plex import PlexRecentItem
from plexdigest.statistics import RunStatistics


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep config lookup, the error log and the ledger inside tmp_path."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in ("PLEX_URL", "PLEX_TOKEN", "TMDB_API_KEY", "IMGUR_CLIENT_ID"):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    RunStatistics.reset_current()
    yield
    reset_config()
    RunStatistics.reset_current()


@pytest.fixture
def make_movie() -> Callable[..., PlexRecentItem]:
    """Factory for movie items from the recently added feed."""

    def _make(
        title: str = "Alien",
        year: int | None = 1979,
        guid_hints: str = "plex://movie/5d7768 imdb://tt0078748",
        **kwargs: Any,
    ) -> PlexRecentItem:
        kwargs.setdefault("rating_key", f"m-{title}")
        kwargs.setdefault("library_section_id", "1")
        kwargs.setdefault("library_section_title", "Movies")
        return PlexRecentItem(kind="movie", title=title, year=year, guid_hints=guid_hints, **kwargs)

    return _make


@pytest.fixture
def make_season() -> Callable[..., PlexRecentItem]:
    """Factory for season items from the recently added feed."""

    def _make(
        show: str = "The Expanse",
        index: int = 1,
        episode_count: int = 10,
        guid_hints: str = "plex://season/602e tvdb://6543210",
        show_guid_hints: str = "plex://show/5d9c tvdb://280619",
        **kwargs: Any,
    ) -> PlexRecentItem:
        kwargs.setdefault("rating_key", f"s-{show}-{index}")
        kwargs.setdefault("library_section_id", "2")
        kwargs.setdefault("library_section_title", "TV Shows")
        kwargs.setdefault("thumb", f"/library/metadata/{show.replace(' ', '')}/thumb/1")
        return PlexRecentItem(
            kind="season",
            title=f"Season {index}",
            parent_title=show,
            season_index=index,
            episode_count=episode_count,
            guid_hints=guid_hints,
            show_guid_hints=show_guid_hints,
            **kwargs,
        )

    return _make
