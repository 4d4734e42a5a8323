"""Imgur image hosting integration."""

from plexdigest.imgur.client import (
    ImgurAuthError,
    ImgurClient,
    ImgurError,
    ImgurImage,
    ImgurRateLimitError,
)

__all__ = [
    "ImgurClient",
    "ImgurError",
    "ImgurAuthError",
    "ImgurRateLimitError",
    "ImgurImage",
]
