"""Data models for Plex content."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PlexLibrary(BaseModel):
    """A Plex library section."""

    key: str
    title: str
    type: str  # "movie", "show", "artist", "photo"

    @property
    def is_movie_library(self) -> bool:
        """Check if this is a movie library."""
        return self.type == "movie"

    @property
    def is_tv_library(self) -> bool:
        """Check if this is a TV show library."""
        return self.type == "show"


class PlexRecentItem(BaseModel):
    """An entry from the server's "recently added" feed (a movie or a season)."""

    model_config = ConfigDict(frozen=True)

    rating_key: str
    kind: Literal["movie", "season"]
    title: str
    year: int | None = None
    guid_hints: str = ""  # Every guid on the item, space separated
    show_guid_hints: str = ""  # Seasons only: guids of the parent show
    added_at: int = 0  # Epoch seconds
    library_section_id: str = ""
    library_section_title: str = ""
    thumb: str | None = None  # Server-relative thumbnail path

    # Seasons only
    parent_title: str = ""  # Show name
    season_index: int = 0
    episode_count: int = 0

    # Passed through to the digest, never refetched
    content_rating: str | None = None
    summary: str = ""
    cast: list[str] = Field(default_factory=list)
    duration_minutes: int | None = None

    @property
    def is_movie(self) -> bool:
        """Check if this item is a movie."""
        return self.kind == "movie"

    @property
    def is_season(self) -> bool:
        """Check if this item is a TV season."""
        return self.kind == "season"

    @property
    def display_title(self) -> str:
        """Get the title with year for display."""
        if self.year:
            return f"{self.title} ({self.year})"
        return self.title
