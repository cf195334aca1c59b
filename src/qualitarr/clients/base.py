"""Base client for fetching external rule catalogs over HTTP."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Any, Self

import httpx
from cachetools import TTLCache
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class BaseCatalogClient:
    """Base client with retry and caching for JSON catalog endpoints.

    This base class provides:
    - HTTP client management with connection pooling
    - Automatic retry with exponential backoff for transient failures
    - Per-client TTL caching for GET requests
    - Context manager protocol for resource cleanup

    Subclasses build their fetch methods on `_get()` for cached requests or
    `_get_uncached()` for fresh data.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        cache_ttl: int = 300,
        max_retries: int = 3,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL that catalog paths are resolved against
            timeout: Request timeout in seconds (default 30.0)
            cache_ttl: Cache time-to-live in seconds (default 300)
            max_retries: Maximum number of attempts per request (default 3)
            headers: Extra headers sent with every request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.max_retries = max_retries
        self.headers = headers or {}

        self._client: httpx.AsyncClient | None = None
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=100, ttl=cache_ttl)
        self._cache_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json", **self.headers},
            timeout=self.timeout,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not in context.

        Raises:
            RuntimeError: If called outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    def _make_cache_key(self, endpoint: str, params: dict[str, Any] | None) -> str:
        params_str = str(sorted((params or {}).items()))
        key_data = f"{endpoint}:{params_str}"
        return hashlib.sha256(key_data.encode()).hexdigest()[:16]

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a cached GET request.

        Args:
            endpoint: Path relative to the base URL
            params: Optional query parameters

        Returns:
            The decoded JSON body

        Raises:
            httpx.HTTPStatusError: On HTTP errors (after retries exhausted)
        """
        cache_key = self._make_cache_key(endpoint, params)

        async with self._cache_lock:
            if cache_key in self._cache:
                logger.debug("Cache hit for %s", endpoint)
                return self._cache[cache_key]

        logger.debug("Cache miss for %s, fetching", endpoint)
        data = await self._get_uncached(endpoint, params)

        async with self._cache_lock:
            self._cache[cache_key] = data

        return data

    async def _get_uncached(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a GET request without caching, with retry for transient failures."""
        return await self._request_with_retry("GET", endpoint, params=params)

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an HTTP request with retry logic.

        Retries on connection errors and timeouts. 401, 403 and 404 fail
        immediately; 429 and 5xx are logged before raising.

        Raises:
            httpx.HTTPStatusError: On HTTP error responses
            httpx.TransportError: After all retries are exhausted
        """

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(
                (httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout)
            ),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async def _do_request() -> Any:
            response = await self.client.request(method, endpoint, params=params)

            if response.status_code in (401, 403, 404):
                response.raise_for_status()

            if response.status_code == 429 or response.status_code >= 500:
                logger.warning(
                    "Retryable HTTP error %d for %s", response.status_code, endpoint
                )
                response.raise_for_status()

            response.raise_for_status()
            return response.json()

        return await _do_request()

    def _log_retry(self, retry_state: Any) -> None:
        logger.warning(
            "Retry attempt %d after error: %s",
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else "unknown",
        )

    async def clear_cache(self) -> int:
        """Clear all cached responses.

        Returns:
            The number of entries that were cleared
        """
        async with self._cache_lock:
            count = len(self._cache)
            self._cache.clear()
            return count
