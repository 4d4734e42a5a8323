"""Shared HTTP plumbing for the TMDB and Imgur clients.

Both services speak JSON over HTTPS and signal failures through status
codes. BaseAPIClient turns those codes into one exception family so the
enrichment pipeline can treat a TMDB miss and an Imgur outage alike.
"""

from __future__ import annotations

from typing import Any, Self, cast

import httpx


class APIError(Exception):
    """A web API returned an error.

    TMDBError and ImgurError derive from this class.
    """

    pass


class APIAuthError(APIError):
    """The service rejected the API key or client id (401/403)."""

    pass


class APINotFoundError(APIError):
    """The requested record does not exist (404)."""

    pass


class APIRateLimitError(APIError):
    """The service is throttling requests (429).

    Attributes:
        retry_after: Seconds the service asked callers to wait, if it said.
    """

    def __init__(self, retry_after: int | None = None, message: str | None = None) -> None:
        self.retry_after = retry_after
        if message is None:
            wait = f"{retry_after}s" if retry_after is not None else "a while"
            message = f"Too many requests, retry after {wait}"
        super().__init__(message)


def _retry_after(value: str | None) -> int | None:
    """Parse a Retry-After header given in seconds."""
    if value and value.strip().isdigit():
        return int(value)
    return None


class BaseAPIClient:
    """JSON web API client with per-service error classes.

    Subclasses set BASE_URL, the four error classes and _api_name, call
    _open() once credentials are known, and then use _get()/_post(). Every
    request is counted in the run statistics under its call type.
    """

    BASE_URL = ""

    _error_cls: type[APIError] = APIError
    _auth_error_cls: type[APIAuthError] = APIAuthError
    _not_found_cls: type[APINotFoundError] = APINotFoundError
    _rate_limit_cls: type[APIRateLimitError] = APIRateLimitError
    _api_name: str = "API"

    def __init__(self) -> None:
        self._client: httpx.Client | None = None

    def _open(
        self,
        timeout: float,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.Client(
            base_url=self.BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
            params=params,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _http(self, api_call_type: str) -> httpx.Client:
        if self._client is None:
            raise self._error_cls(f"{self._api_name} client is closed")
        self._record_api_call(api_call_type)
        return self._client

    def _get(self, path: str, api_call_type: str, **params: Any) -> dict[str, Any]:
        """GET a resource; query parameters are passed as keywords."""
        response = self._http(api_call_type).get(path, params=params or None)
        return self._handle_response(response)

    def _post(self, path: str, api_call_type: str, data: dict[str, Any]) -> dict[str, Any]:
        """POST a form."""
        response = self._http(api_call_type).post(path, data=data)
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a successful response or raise the matching error."""
        status = response.status_code
        if status == 200:
            try:
                return cast(dict[str, Any], response.json())
            except ValueError as e:
                # e.g. a captive portal or proxy page served with a 200
                raise self._error_cls(f"{self._api_name} returned a non-JSON response") from e

        if status in (401, 403):
            raise self._auth_error_cls(f"{self._api_name} rejected the credentials ({status})")
        if status == 404:
            raise self._not_found_cls(f"{self._api_name} has no such record")
        if status == 429:
            raise self._rate_limit_cls(_retry_after(response.headers.get("Retry-After")))

        raise self._error_cls(
            f"{self._api_name} API error ({status}): {self._error_message(response)}"
        )

    def _error_message(self, response: httpx.Response) -> str:
        """Get the service's explanation from an error body."""
        try:
            body = response.json()
        except ValueError:
            return response.text or "Unknown error"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text or "Unknown error"

    def _record_api_call(self, api_call_type: str) -> None:
        from plexdigest.statistics import RunStatistics

        stats = RunStatistics.get_current()
        if stats:
            stats.record_api_call(api_call_type)
