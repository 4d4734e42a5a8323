"""PlexDigest - Email a digest of media recently added to Plex."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("plexdigest")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "1.0.0"

__all__ = ["__version__"]
