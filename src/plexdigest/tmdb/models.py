"""Data models for TMDB API responses."""

from datetime import date

from pydantic import BaseModel, Field

POSTER_URL_TEMPLATE = "https://image.tmdb.org/t/p/w185{path}"


def poster_url(poster_path: str | None) -> str | None:
    """Compose the fixed-width (w185) poster URL for a TMDB image path."""
    if poster_path:
        return POSTER_URL_TEMPLATE.format(path=poster_path)
    return None


class TMDBGenre(BaseModel):
    """A TMDB genre."""

    id: int
    name: str


class TMDBSearchResult(BaseModel):
    """A candidate returned by /find or /search (movies use title, shows use name)."""

    id: int
    title: str | None = None
    name: str | None = None
    release_date: date | None = None
    first_air_date: date | None = None


class TMDBFindResults(BaseModel):
    """Results of a lookup by external identifier."""

    movie_results: list[TMDBSearchResult] = Field(default_factory=list)
    tv_results: list[TMDBSearchResult] = Field(default_factory=list)


class TMDBMovieDetails(BaseModel):
    """Full movie record from /movie/{id}."""

    id: int
    title: str = ""
    release_date: date | None = None
    imdb_id: str | None = None
    overview: str = ""
    runtime: int | None = None
    vote_average: float | None = None
    poster_path: str | None = None
    genres: list[TMDBGenre] = Field(default_factory=list)

    @property
    def year(self) -> int | None:
        """Get the release year."""
        if self.release_date:
            return self.release_date.year
        return None

    @property
    def poster_url(self) -> str | None:
        """Get the full poster image URL."""
        return poster_url(self.poster_path)

    @property
    def genre_names(self) -> list[str]:
        """Genre names in TMDB order."""
        return [g.name for g in self.genres]


class TMDBTVDetails(BaseModel):
    """Full TV series record from /tv/{id}."""

    id: int | None = None
    name: str = ""
    first_air_date: date | None = None
    last_air_date: date | None = None
    overview: str = ""
    vote_average: float | None = None
    poster_path: str | None = None
    genres: list[TMDBGenre] = Field(default_factory=list)

    @property
    def poster_url(self) -> str | None:
        """Get the full poster image URL."""
        return poster_url(self.poster_path)

    @property
    def genre_names(self) -> list[str]:
        """Genre names in TMDB order."""
        return [g.name for g in self.genres]


class TMDBContentRating(BaseModel):
    """A per-region TV content rating."""

    region: str
    rating: str
