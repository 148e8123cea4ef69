"""Common fetch/cache flow for REST candle providers."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from signals_core.models.kline import Kline

from marketfeed.assets import cache_ttl_for
from marketfeed.cache import TTLCache, generate_key
from marketfeed.clients.errors import ProviderNotConfiguredError, UnsupportedTimeframeError
from marketfeed.clients.transport import RestTransport
from marketfeed.config import ProviderSettings

logger = logging.getLogger(__name__)


class BaseRestClient:
    """Cache → rate limit → HTTP → validate → transform → cache.

    Subclasses provide ``NAME``, ``TIMEFRAME_MAP`` and ``_fetch``; the
    transport handles rate limiting and retries, this class handles the
    cache and the enabled/timeframe checks.
    """

    NAME = ""
    REQUIRES_API_KEY = True
    # Normalized timeframe -> provider interval string
    TIMEFRAME_MAP: dict[str, str] = {}

    def __init__(
        self,
        settings: ProviderSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: TTLCache | None = None,
    ):
        self.settings = settings
        self.cache = cache or TTLCache(default_ttl=settings.cache_ttl)
        self.transport = RestTransport(
            self.NAME, settings, headers=self._headers(), transport=transport
        )

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def enabled(self) -> bool:
        """False when the provider needs an API key and none is configured."""
        return bool(self.settings.api_key) or not self.REQUIRES_API_KEY

    def _headers(self) -> dict[str, str]:
        return {}

    def supports(self, timeframe: str) -> bool:
        return timeframe in self.TIMEFRAME_MAP

    def interval_for(self, timeframe: str) -> str:
        try:
            return self.TIMEFRAME_MAP[timeframe]
        except KeyError:
            raise UnsupportedTimeframeError(
                self.NAME, f"Timeframe {timeframe} not supported"
            ) from None

    def timeframe_for(self, interval: str) -> str:
        """Map a provider interval back to the normalized timeframe."""
        for timeframe, provider_interval in self.TIMEFRAME_MAP.items():
            if provider_interval == interval:
                return timeframe
        raise UnsupportedTimeframeError(self.NAME, f"Unknown interval {interval}")

    async def close(self) -> None:
        await self.transport.close()

    async def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        *,
        limit: int | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> list[Kline]:
        """
        Fetch klines, ascending by open time.

        Args:
            symbol: Normalized symbol (e.g. "BTCUSDT", "EUR/USD")
            timeframe: Normalized timeframe (e.g. "5m", "1d")
            limit: Number of most recent bars
            start_time: Range start (inclusive)
            end_time: Range end (inclusive)

        Raises:
            ProviderNotConfiguredError: Provider needs an API key.
            UnsupportedTimeframeError: No matching provider interval.
            MarketDataError: Transport or validation failure.
        """
        if not self.enabled:
            raise ProviderNotConfiguredError(self.NAME, "API key not configured")
        self.interval_for(timeframe)

        key = generate_key(
            self.NAME,
            symbol,
            timeframe,
            limit=limit,
            start=int(start_time.timestamp() * 1000) if start_time else None,
            end=int(end_time.timestamp() * 1000) if end_time else None,
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        klines = await self._fetch(symbol, timeframe, limit, start_time, end_time)

        if start_time is not None or end_time is not None:
            self.cache.set(key, klines, self.settings.historical_cache_ttl)
        else:
            ttl, midnight = cache_ttl_for(timeframe)
            self.cache.set(key, klines, ttl, midnight_utc=midnight)
        return klines

    async def _fetch(
        self,
        symbol: str,
        timeframe: str,
        limit: int | None,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> list[Kline]:
        raise NotImplementedError
