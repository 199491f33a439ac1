"""Base client for network requests."""

import logging
from abc import ABC, abstractmethod
from time import sleep
from typing import Any

import httpx

from .exceptions import (
    APIError,
    AuthenticationError,
    ConnectionError,
    NotFoundError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class Client(ABC):
    """Base class for network clients.

    Provides a lazy-initialized httpx.Client with context manager support,
    configurable timeout, retries, headers and basic auth via dict config.

    Config keys:
        base_url (required): Base URL for all requests
        timeout: Request timeout in seconds (default: 60)
        retry_attempts: Number of attempts for transient failures (default: 3)
        retry_delay: Delay between retries in seconds (default: 1)
        headers: Additional headers to include in requests
        auth: (username, password) pair for HTTP basic auth
    """

    def __init__(self, config: dict):
        if "base_url" not in config:
            raise ValueError("config must include 'base_url'")

        self._config = config
        self._client: httpx.Client | None = None

    @property
    def base_url(self) -> str:
        return str(self._config["base_url"])

    @property
    def timeout(self) -> float:
        return float(self._config.get("timeout", 60))

    @property
    def retry_attempts(self) -> int:
        return int(self._config.get("retry_attempts", 3))

    @property
    def retry_delay(self) -> float:
        return float(self._config.get("retry_delay", 1))

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._config.get("headers", {}))

    @property
    def auth(self) -> tuple[str, str] | None:
        auth = self._config.get("auth")
        return tuple(auth) if auth else None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialized httpx client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
            )
        return self._client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    @staticmethod
    def _error_detail(response: httpx.Response) -> str | None:
        """Pull the store's own error message out of an error body, if any."""
        try:
            body = response.json()
        except ValueError:
            return None
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return None

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Map HTTP errors to exceptions.

        Raises:
            NotFoundError: For 404 responses
            RateLimitError: For 429 responses
            AuthenticationError: For 401 and 403 responses
            APIError: For other non-2xx responses
        """
        if response.is_success:
            return response

        status_code = response.status_code
        detail = self._error_detail(response)
        suffix = f" ({detail})" if detail else ""

        if status_code == 404:
            raise NotFoundError(f"Resource not found: {response.url}{suffix}", detail=detail)
        if status_code == 429:
            raise RateLimitError(f"Rate limit exceeded: {response.url}{suffix}", detail=detail)
        if status_code in (401, 403):
            raise AuthenticationError(
                f"Asset store rejected credentials ({status_code}): {response.url}{suffix}",
                status_code=status_code,
                detail=detail,
            )
        raise APIError(
            f"API error {status_code}: {response.url}{suffix}",
            status_code=status_code,
            detail=detail,
        )

    def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> httpx.Response:
        """Make a request, retrying failures that can succeed on repeat.

        Connection errors, timeouts, 429 and 5xx responses are retried;
        other error responses are raised immediately.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: URL path (appended to base_url)
            **kwargs: Additional arguments passed to httpx.request

        Returns:
            The HTTP response

        Raises:
            ConnectionError: If all retry attempts fail due to network issues
            APIError: If the API returns a non-2xx response
        """
        if self.auth is not None:
            kwargs.setdefault("auth", self.auth)

        last_exception: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = self.client.request(method, path, **kwargs)
                return self._handle_response(response)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                logger.warning(
                    f"{type(e).__name__} on {method} {path} "
                    f"(attempt {attempt + 1}/{self.retry_attempts}): {e}"
                )
            except APIError as e:
                if not e.retryable or attempt == self.retry_attempts - 1:
                    raise
                logger.warning(
                    f"{e.message} (attempt {attempt + 1}/{self.retry_attempts})"
                )

            if attempt < self.retry_attempts - 1:
                sleep(self.retry_delay)

        msg = f"Connection failed after {self.retry_attempts} attempts"
        raise ConnectionError(msg) from last_exception

    def get(self, path: str, **kwargs) -> httpx.Response:
        """Convenience method for GET requests."""
        return self._request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> httpx.Response:
        """Convenience method for POST requests."""
        return self._request("POST", path, **kwargs)

    @abstractmethod
    def fetch(self, *args, **kwargs) -> Any:
        """Fetch data from the API. Must be implemented by subclasses."""
        pass
