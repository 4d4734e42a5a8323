"""Plex Media Server integration."""

from plexdigest.plex.client import (
    PlexAuthError,
    PlexClient,
    PlexConnectionError,
    PlexError,
    PlexNotFoundError,
)
from plexdigest.plex.models import PlexLibrary, PlexRecentItem

__all__ = [
    "PlexClient",
    "PlexError",
    "PlexAuthError",
    "PlexConnectionError",
    "PlexNotFoundError",
    "PlexLibrary",
    "PlexRecentItem",
]
