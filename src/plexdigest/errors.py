"""Shared error helpers for PlexDigest.

Errors that are recovered locally (a movie that could not be enriched, a
poster that could not be mirrored) are appended to an error log next to the
executable so the digest can still be sent.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import httpx

LOG_FILE_NAME = "plexdigest_errors.log"


def get_log_file_path() -> Path:
    """Get the error log location, beside the executable or in the working directory."""
    from plexdigest.config import get_exe_directory

    return get_exe_directory() / LOG_FILE_NAME


def log_error(error: Exception | str, context: str = "") -> None:
    """Append a timestamped line to the error log.

    Lines read "[2024-05-01 20:15:00] TMDBNotFoundError (Lookup of Alien): ...";
    plain strings are logged with the type "Message".
    """
    kind = "Message" if isinstance(error, str) else type(error).__name__
    where = f" ({context})" if context else ""
    line = f"[{datetime.now():%Y-%m-%d %H:%M:%S}] {kind}{where}: {error}\n"
    try:
        with open(get_log_file_path(), "a", encoding="utf-8") as f:
            f.write(line)
    except OSError:
        # An unwritable log must not abort the run
        pass


def get_friendly_message(error: Exception) -> str:
    """Translate an exception into a message suitable for the operator.

    Args:
        error: The exception raised by a client or the mailer.

    Returns:
        A short human-readable explanation.
    """
    from plexdigest.api import APIAuthError, APIRateLimitError
    from plexdigest.mailer import MailError
    from plexdigest.plex import PlexAuthError, PlexConnectionError

    if isinstance(error, PlexAuthError):
        return f"Plex rejected the credentials. Check url and token in plexdigest.ini. ({error})"
    if isinstance(error, PlexConnectionError):
        return f"Could not reach the Plex server. Is it running? ({error})"
    if isinstance(error, APIRateLimitError):
        return "The metadata service is rate limiting requests. Try again in a few minutes."
    if isinstance(error, APIAuthError):
        return f"An API key was rejected. Check plexdigest.ini. ({error})"
    if isinstance(error, MailError):
        return f"The digest could not be emailed. Check the [email] settings. ({error})"
    if isinstance(error, httpx.TimeoutException):
        return "A request timed out. Check your network connection."
    if isinstance(error, httpx.RequestError):
        return f"Network error: {error}"
    return str(error) or type(error).__name__
