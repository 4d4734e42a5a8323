"""TMDB (The Movie Database) API integration."""

from plexdigest.tmdb.client import (
    TMDBAuthError,
    TMDBClient,
    TMDBError,
    TMDBNotFoundError,
    TMDBRateLimitError,
)
from plexdigest.tmdb.models import (
    TMDBContentRating,
    TMDBFindResults,
    TMDBGenre,
    TMDBMovieDetails,
    TMDBSearchResult,
    TMDBTVDetails,
)

__all__ = [
    "TMDBClient",
    "TMDBError",
    "TMDBAuthError",
    "TMDBNotFoundError",
    "TMDBRateLimitError",
    "TMDBContentRating",
    "TMDBFindResults",
    "TMDBGenre",
    "TMDBMovieDetails",
    "TMDBSearchResult",
    "TMDBTVDetails",
]
