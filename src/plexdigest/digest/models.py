"""Data models for enrichment results."""

from pydantic import BaseModel, Field

from plexdigest.digest.ids import extract_legacy_show_tvdb_id, extract_tvdb_id
from plexdigest.plex.models import PlexRecentItem


def format_vote(vote_average: float | None) -> float | None:
    """Round a vote average to one decimal place, keeping None (and 0) as unrated."""
    if not vote_average:
        return None
    return round(float(vote_average), 1)


def format_year_range(first_year: int | None, last_year: int | None) -> str:
    """Render the years a show aired.

    Equal years collapse to a single year. A show with no last air date
    renders as "2019-".
    """
    if first_year is None:
        return str(last_year) if last_year else ""
    if last_year is None:
        return f"{first_year}-"
    if first_year == last_year:
        return str(first_year)
    return f"{first_year}-{last_year}"


# ============================================================================
# Movies
# ============================================================================


class EnrichedMovie(BaseModel):
    """A movie matched to a TMDB record."""

    title: str
    display_year: int | None = None
    tmdb_id: int
    imdb_id: str | None = None
    poster_url: str | None = None
    genres: list[str] = Field(default_factory=list)
    content_rating: str | None = None
    runtime_minutes: int | None = None
    overview: str = ""
    cast: list[str] = Field(default_factory=list)
    vote_average: float | None = None
    added_at: int = 0
    library_section_title: str = ""
    source_thumb: str | None = None  # Plex thumbnail path, the poster ledger key

    @property
    def display_title(self) -> str:
        """Get the title with year for display."""
        if self.display_year:
            return f"{self.title} ({self.display_year})"
        return self.title

    @property
    def genre_text(self) -> str:
        """Genres for display; a single genre is shown as is."""
        if len(self.genres) > 1:
            return ", ".join(self.genres)
        return self.genres[0] if self.genres else ""

    @property
    def rating_text(self) -> str:
        """Vote average with one decimal, or an empty string when unrated."""
        return f"{self.vote_average:.1f}" if self.vote_average is not None else ""

    @property
    def imdb_url(self) -> str | None:
        """Get the IMDB title page URL."""
        if self.imdb_id:
            return f"https://www.imdb.com/title/{self.imdb_id}/"
        return None

    @property
    def tmdb_url(self) -> str:
        """Get the TMDB movie page URL."""
        return f"https://www.themoviedb.org/movie/{self.tmdb_id}"


class MovieNotFound(BaseModel):
    """A movie that could not be enriched; rendered with a placeholder."""

    title: str
    year: int | None = None
    added_at: int = 0
    library_section_title: str = ""

    @property
    def display_title(self) -> str:
        """Get the title with year for display."""
        if self.year:
            return f"{self.title} ({self.year})"
        return self.title


# ============================================================================
# Shows
# ============================================================================


class SeasonRow(BaseModel):
    """One added season of a show."""

    title: str
    index: int
    episode_count: int = 0

    @property
    def episode_text(self) -> str:
        """Episode count with a pluralised noun (e.g. "1 episode", "10 episodes")."""
        noun = "episodes" if self.episode_count > 1 else "episode"
        return f"{self.episode_count} {noun}"


class ShowCluster(BaseModel):
    """All seasons of one show added during the window."""

    title: str
    library_section_id: str = ""
    seasons: list[PlexRecentItem] = Field(default_factory=list)

    @property
    def sorted_seasons(self) -> list[PlexRecentItem]:
        """Member seasons in ascending numeric season index."""
        return sorted(self.seasons, key=lambda s: s.season_index)

    @property
    def season_rows(self) -> list[SeasonRow]:
        """Season rows in ascending index order."""
        return [
            SeasonRow(title=s.title, index=s.season_index, episode_count=s.episode_count)
            for s in self.sorted_seasons
        ]

    @property
    def tvdb_id(self) -> int | None:
        """The show's TVDB id, from the first member season that names it.

        Show guids are preferred. A season's own guids are only used in the
        legacy "thetvdb://<show>/<season>" form.
        """
        for season in self.seasons:
            tvdb_id = extract_tvdb_id(season.show_guid_hints)
            if tvdb_id is not None:
                return tvdb_id
        for season in self.seasons:
            tvdb_id = extract_legacy_show_tvdb_id(season.guid_hints)
            if tvdb_id is not None:
                return tvdb_id
        return None

    @property
    def thumb(self) -> str | None:
        """The first available thumbnail path, used as the poster ledger key."""
        for season in self.sorted_seasons:
            if season.thumb:
                return season.thumb
        return None

    @property
    def latest_added_at(self) -> int:
        """When the most recent season was added."""
        return max((s.added_at for s in self.seasons), default=0)


class EnrichedShow(BaseModel):
    """A show matched to a TMDB record, with its added seasons."""

    title: str
    year_range: str = ""
    tmdb_id: int
    imdb_id: str | None = None
    poster_url: str | None = None
    genres: list[str] = Field(default_factory=list)
    content_rating: str | None = None
    overview: str = ""
    vote_average: float | None = None
    seasons: list[SeasonRow] = Field(default_factory=list)
    source_thumb: str | None = None

    @property
    def genre_text(self) -> str:
        """Genres for display; a single genre is shown as is."""
        if len(self.genres) > 1:
            return ", ".join(self.genres)
        return self.genres[0] if self.genres else ""

    @property
    def rating_text(self) -> str:
        """Vote average with one decimal, or an empty string when unrated."""
        return f"{self.vote_average:.1f}" if self.vote_average is not None else ""

    @property
    def imdb_url(self) -> str | None:
        """Get the IMDB title page URL."""
        if self.imdb_id:
            return f"https://www.imdb.com/title/{self.imdb_id}/"
        return None

    @property
    def tmdb_url(self) -> str:
        """Get the TMDB series page URL."""
        return f"https://www.themoviedb.org/tv/{self.tmdb_id}"


class ShowNotFound(BaseModel):
    """A show that could not be enriched; its seasons are still listed."""

    title: str
    seasons: list[SeasonRow] = Field(default_factory=list)


# ============================================================================
# Posters
# ============================================================================


class PosterCacheEntry(BaseModel):
    """A poster previously mirrored to the image host."""

    source_key: str
    mirrored_url: str
    delete_token: str = ""
    date_added: str = ""
    height: int = 0
    width: int = 0


class MirrorResult(BaseModel):
    """Where a poster is hosted and how big it is."""

    url: str
    width: int = 0
    height: int = 0
    cached: bool = False


# ============================================================================
# Report
# ============================================================================


class DigestReport(BaseModel):
    """Everything the renderer needs for one digest."""

    days: int = 7
    movies: list[EnrichedMovie | MovieNotFound] = Field(default_factory=list)
    shows: list[EnrichedShow | ShowNotFound] = Field(default_factory=list)
    movie_count: int = 0
    show_count: int = 0
    server_name: str = ""

    @property
    def enriched_movies(self) -> list[EnrichedMovie]:
        """Movies with TMDB metadata."""
        return [m for m in self.movies if isinstance(m, EnrichedMovie)]

    @property
    def not_found_movies(self) -> list[MovieNotFound]:
        """Movies without TMDB metadata."""
        return [m for m in self.movies if isinstance(m, MovieNotFound)]

    @property
    def enriched_shows(self) -> list[EnrichedShow]:
        """Shows with TMDB metadata."""
        return [s for s in self.shows if isinstance(s, EnrichedShow)]

    @property
    def not_found_shows(self) -> list[ShowNotFound]:
        """Shows without TMDB metadata."""
        return [s for s in self.shows if isinstance(s, ShowNotFound)]

    @property
    def not_found_counts(self) -> dict[str, int]:
        """How many movies and shows could not be enriched."""
        return {
            "movies": len(self.not_found_movies),
            "shows": len(self.not_found_shows),
        }

    @property
    def is_empty(self) -> bool:
        """Check if nothing was added during the window."""
        return self.movie_count == 0 and self.show_count == 0
