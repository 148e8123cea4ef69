"""HTTP transport shared by every REST provider client.

Wraps an httpx.AsyncClient with:
- a sliding-window rate limiter (N requests per M minutes, blocks, never drops)
- typed error mapping for non-2xx responses
- bounded retries with exponential backoff for retryable failures
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable

import httpx
import orjson

from marketfeed.clients.errors import (
    MarketDataError,
    ResponseValidationError,
    TransientTransportError,
    error_for_status,
)
from marketfeed.config import ProviderSettings

logger = logging.getLogger(__name__)

PayloadValidator = Callable[[Any], None]


class RateLimiter:
    """Sliding-window rate limiter.

    Remembers the start time of the last ``max_requests`` calls. When the
    window is full, ``acquire`` sleeps until the oldest call leaves it.
    """

    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _purge(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    async def acquire(self) -> None:
        """Wait if necessary to respect the rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            now = loop.time()
            self._purge(now)

            if len(self._calls) >= self.max_requests:
                wait_time = self._calls[0] + self.window_seconds - now
                if wait_time > 0:
                    logger.debug(f"Rate limit reached, waiting {wait_time:.2f}s")
                    await asyncio.sleep(wait_time)
                now = loop.time()
                self._purge(now)

            self._calls.append(now)

    @property
    def in_window(self) -> int:
        return len(self._calls)


def backoff_delay(attempt: int, base_delay: float, multiplier: float) -> float:
    """Delay before retry number ``attempt`` (1-based)."""
    return base_delay * multiplier ** (attempt - 1)


class RestTransport:
    """Rate-limited, retrying JSON-over-HTTP transport for one provider."""

    def __init__(
        self,
        provider: str,
        settings: ProviderSettings,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.provider = provider
        self.settings = settings
        self.rate_limiter = RateLimiter(
            settings.rate_limit_max_requests,
            settings.rate_limit_window_minutes * 60.0,
        )
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers=self._headers,
                timeout=self.settings.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request_once(
        self,
        endpoint: str,
        params: dict[str, Any] | None,
        validate: PayloadValidator | None,
    ) -> Any:
        await self.rate_limiter.acquire()
        client = await self._get_client()

        try:
            response = await client.get(endpoint, params=params)
        except httpx.TransportError as e:
            raise TransientTransportError(
                self.provider, f"{type(e).__name__}: {e}"
            ) from e

        if response.status_code >= 400:
            raise error_for_status(self.provider, response.status_code, response.text)

        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ResponseValidationError(self.provider, f"Invalid JSON: {e}") from e

        if validate is not None:
            validate(data)
        return data

    async def get_json(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        validate: PayloadValidator | None = None,
    ) -> Any:
        """GET ``endpoint`` and return the decoded JSON payload.

        ``validate`` runs inside the retry loop, so a validator may raise a
        retryable error (e.g. a rate-limit notice in a 200 body).

        Raises:
            MarketDataError: The last error once retries are exhausted, or
                the first non-retryable one.
        """
        base_delay = self.settings.retry_delay_ms / 1000.0
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._request_once(endpoint, params, validate)
            except MarketDataError as e:
                if not e.retryable or attempt > self.settings.max_retries:
                    raise
                delay = backoff_delay(attempt, base_delay, self.settings.backoff_multiplier)
                logger.warning(
                    f"{self.provider} request {endpoint} failed ({e}); "
                    f"retry {attempt}/{self.settings.max_retries} in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
