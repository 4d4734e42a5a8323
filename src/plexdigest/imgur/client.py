"""Imgur API client (anonymous uploads)."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from plexdigest.api import (
    APIAuthError,
    APIError,
    APINotFoundError,
    APIRateLimitError,
    BaseAPIClient,
)


class ImgurError(APIError):
    """Base exception for Imgur API errors."""

    pass


class ImgurAuthError(ImgurError, APIAuthError):
    """Authentication error (invalid client id)."""

    pass


class ImgurNotFoundError(ImgurError, APINotFoundError):
    """Resource not found."""

    pass


class ImgurRateLimitError(ImgurError, APIRateLimitError):
    """Upload quota exceeded."""

    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__(retry_after=retry_after)


class ImgurImage(BaseModel):
    """An uploaded image."""

    link: str
    deletehash: str = ""
    width: int = 0
    height: int = 0


class ImgurClient(BaseAPIClient):
    """Client for the Imgur v3 API."""

    BASE_URL = "https://api.imgur.com/3"
    DEFAULT_TIMEOUT = 60.0

    _error_cls = ImgurError
    _auth_error_cls = ImgurAuthError
    _not_found_cls = ImgurNotFoundError
    _rate_limit_cls = ImgurRateLimitError
    _api_name = "Imgur"

    def __init__(
        self,
        client_id: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the Imgur client.

        Args:
            client_id: Imgur application client id. If not provided, reads from config.
            timeout: Request timeout in seconds.
        """
        super().__init__()

        if client_id is None:
            from plexdigest.config import get_config

            client_id = get_config().imgur.client_id

        self.client_id = client_id
        if not self.client_id:
            raise ImgurAuthError(
                "Imgur client id not provided. Configure client_id in plexdigest.ini."
            )

        self._open(timeout, headers={"Authorization": f"Client-ID {self.client_id}"})

    def _error_message(self, response: httpx.Response) -> str:
        # Errors come wrapped as {"data": {"error": ...}, "success": false}
        try:
            data = response.json().get("data")
        except (ValueError, AttributeError):
            return response.text or "Unknown error"
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return "Unknown error"

    def upload(self, image_b64: str, title: str | None = None) -> ImgurImage:
        """Upload a base64-encoded image.

        Args:
            image_b64: The image, base64 encoded.
            title: Optional image title.

        Returns:
            The hosted image with its link, delete hash and dimensions.
        """
        form: dict[str, Any] = {"image": image_b64, "type": "base64"}
        if title:
            form["title"] = title

        data = self._post("/image", "imgur_upload", form)

        if not data.get("success", True):
            raise ImgurError(f"Imgur upload failed: {data.get('data')}")

        try:
            return ImgurImage.model_validate(data["data"])
        except (ValidationError, KeyError, TypeError) as e:
            raise ImgurError(f"Failed to parse upload response: {e}") from e
