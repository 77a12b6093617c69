"""
HTTP transport for transloader.

A thin wrapper over ``httpx.Client`` exposing the three verbs the
synchronization engine needs. Statuses 2xx, 206 and 416 are returned to the
caller; anything else raises :class:`HTTPStatusError`.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .config import TransloaderConfig
from .exceptions import HTTPStatusError, TransloaderConnectionError

logger = logging.getLogger(__name__)

# 416 Range Not Satisfiable is part of the partial download protocol
PASSTHROUGH_STATUSES = {416}


class HTTPClient:
    """
    Blocking HTTP client used for source downloads and SensorThings uploads.

    Redirects are followed up to ``config.max_redirects``; exhausting them is
    reported as a connection error.
    """

    def __init__(
        self,
        config: Optional[TransloaderConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config or TransloaderConfig()
        self.timeout = self.config.timeout
        self._client = httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            headers={"User-Agent": self.config.user_agent},
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Issue a HEAD request, e.g. to read ``Content-Length``."""
        return self._request("HEAD", url, headers=headers)

    def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        """Issue a GET request with optional extra headers (e.g. ``Range``)."""
        return self._request("GET", url, headers=headers)

    def post(self, url: str, json: Any) -> httpx.Response:
        """POST a JSON document."""
        return self._request(
            "POST", url, json=json, headers={"Content-Type": "application/json"}
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make a request with error handling."""
        logger.debug(f"{method} {url}")

        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransloaderConnectionError(
                f"Request timeout after {self.timeout}s: {url}"
            ) from e
        except httpx.TooManyRedirects as e:
            raise TransloaderConnectionError(f"Too many redirects: {url}") from e
        except httpx.RequestError as e:
            raise TransloaderConnectionError(f"Network error for {url}: {e}") from e

        if response.is_success or response.status_code in PASSTHROUGH_STATUSES:
            return response

        if response.status_code == 404:
            message = f"Not Found: {url}"
        elif response.status_code == 429:
            message = f"Rate limit exceeded: {url}"
        elif response.status_code >= 500:
            message = f"Service temporarily unavailable (HTTP {response.status_code}): {url}"
        else:
            message = None
        raise HTTPStatusError(url, response.status_code, message)
