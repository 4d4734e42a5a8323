"""HTTP client base and the error family shared by the TMDB and Imgur clients."""

from plexdigest.api.base import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
)

__all__ = [
    "APIError",
    "APIAuthError",
    "APINotFoundError",
    "APIRateLimitError",
    "BaseAPIClient",
]
