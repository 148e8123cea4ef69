"""Symbol → provider routing with synthetic-data fallback."""

from __future__ import annotations

import logging
from datetime import datetime

from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass

from marketfeed.assets import ASSET_METADATA, Provider, get_asset_metadata
from marketfeed.clients.alphavantage import AlphaVantageClient
from marketfeed.clients.binance_rest import BinanceRestClient
from marketfeed.clients.binance_ws_kline import BinanceKlineStream, KlineSubscription
from marketfeed.clients.errors import (
    MarketDataError,
    ProviderNotConfiguredError,
    UnsupportedTimeframeError,
)
from marketfeed.clients.finnhub import FinnhubClient
from marketfeed.clients.protocol import CandleProvider
from marketfeed.clients.twelvedata import TwelveDataClient
from marketfeed.config import Settings, get_settings
from marketfeed.mock import generate_mock_klines

logger = logging.getLogger(__name__)


def build_providers(settings: Settings) -> dict[Provider, CandleProvider]:
    """One client per provider, configured from settings."""
    return {
        Provider.BINANCE: BinanceRestClient(settings.binance),
        Provider.TWELVEDATA: TwelveDataClient(settings.twelvedata),
        Provider.ALPHAVANTAGE: AlphaVantageClient(settings.alphavantage),
        Provider.FINNHUB: FinnhubClient(settings.finnhub),
    }


class MarketDataRouter:
    """Resolve a symbol to its providers and fetch klines.

    Providers are tried in the asset's preference order, skipping ones that
    are not configured or do not support the timeframe. When all of them
    fail and ``mock_fallback`` is on, a synthetic series is returned and a
    warning is logged.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        providers: dict[Provider, CandleProvider] | None = None,
        stream: BinanceKlineStream | None = None,
        mock_fallback: bool | None = None,
    ):
        settings = settings or get_settings()
        self._providers = providers if providers is not None else build_providers(settings)
        self._stream = stream
        self._stream_factory = lambda: BinanceKlineStream.from_settings(
            settings.binance, settings.stream
        )
        self.mock_fallback = settings.mock_fallback if mock_fallback is None else mock_fallback

    def get_asset_class(self, symbol: str) -> AssetClass:
        return get_asset_metadata(symbol).asset_class

    def available_symbols(self) -> list[str]:
        return list(ASSET_METADATA)

    def provider_for(self, symbol: str) -> CandleProvider | None:
        """First configured provider for a symbol, if any."""
        for provider in get_asset_metadata(symbol).providers:
            client = self._providers.get(provider)
            if client is not None and client.enabled:
                return client
        return None

    async def get_klines(
        self,
        symbol: str,
        timeframe: str,
        limit: int | None = 300,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> list[Kline]:
        """
        Fetch klines for any supported symbol.

        Raises:
            KeyError: Unknown symbol.
            MarketDataError: Every provider failed and mock fallback is off.
        """
        meta = get_asset_metadata(symbol)
        last_error: MarketDataError | None = None
        unsupported = False

        for provider in meta.providers:
            client = self._providers.get(provider)
            if client is None or not client.enabled:
                logger.debug(f"{provider.value} not configured, skipping for {symbol}")
                continue
            if not client.supports(timeframe):
                unsupported = True
                continue
            try:
                return await client.fetch_candles(
                    symbol,
                    timeframe,
                    limit=limit,
                    start_time=start_time,
                    end_time=end_time,
                )
            except MarketDataError as e:
                logger.warning(f"{provider.value} failed for {symbol} {timeframe}: {e}")
                last_error = e

        if self.mock_fallback:
            if last_error is not None:
                reason = f"last error: {last_error}"
            elif unsupported:
                reason = f"{timeframe} not supported by configured providers"
            else:
                reason = "no provider configured"
            logger.warning(f"Falling back to mock data for {symbol} {timeframe} ({reason})")
            return generate_mock_klines(symbol, timeframe, limit or 300, meta.base_price)

        if last_error is not None:
            raise last_error
        if unsupported:
            raise UnsupportedTimeframeError(
                "router", f"No configured provider for {symbol} supports {timeframe}"
            )
        raise ProviderNotConfiguredError(
            "router", f"No configured provider for {symbol} {timeframe}"
        )

    async def subscribe_live(self, symbol: str, timeframe: str) -> KlineSubscription:
        """Live kline updates; only Binance-served symbols stream.

        Raises:
            ValueError: The symbol has no streaming provider.
        """
        if Provider.BINANCE not in get_asset_metadata(symbol).providers:
            raise ValueError(f"No live stream available for {symbol}")
        if self._stream is None:
            self._stream = self._stream_factory()
        return await self._stream.subscribe(symbol, timeframe)

    async def close(self) -> None:
        """Close HTTP clients and every live stream."""
        if self._stream is not None:
            await self._stream.shutdown()
        for client in self._providers.values():
            await client.close()
