"""External identifier extraction from Plex guid strings.

Plex exposes external ids in two shapes:

    imdb://tt0078748, tmdb://348, tvdb://81189                (current agents)
    com.plexapp.agents.thetvdb://81189/1?lang=en             (legacy agents)

Every function returns None when no identifier is present.
"""

from __future__ import annotations

import re

IMDB_PATTERN = re.compile(r"\b(tt\d{7,})\b")
TVDB_PATTERN = re.compile(r"tvdb://(\d+)")  # also matches thetvdb://
LEGACY_SEASON_PATTERN = re.compile(r"thetvdb://(\d+)/\d+")  # show id, then season number
TMDB_PATTERN = re.compile(r"(?:tmdb|themoviedb)://(\d+)")


def extract_imdb_id(hints: str | None) -> str | None:
    """Extract an IMDB title id (e.g. "tt0078748")."""
    if not hints:
        return None
    match = IMDB_PATTERN.search(hints)
    return match.group(1) if match else None


def extract_tvdb_id(hints: str | None) -> int | None:
    """Extract a numeric TVDB series id."""
    if not hints:
        return None
    match = TVDB_PATTERN.search(hints)
    return int(match.group(1)) if match else None


def extract_legacy_show_tvdb_id(hints: str | None) -> int | None:
    """Extract the show's TVDB id from a legacy agent season guid.

    "com.plexapp.agents.thetvdb://81189/1?lang=en" names show 81189, season 1.
    Current agents' "tvdb://" season guids carry a season id and are ignored.
    """
    if not hints:
        return None
    match = LEGACY_SEASON_PATTERN.search(hints)
    return int(match.group(1)) if match else None


def extract_tmdb_id(hints: str | None) -> int | None:
    """Extract a numeric TMDB id."""
    if not hints:
        return None
    match = TMDB_PATTERN.search(hints)
    return int(match.group(1)) if match else None
