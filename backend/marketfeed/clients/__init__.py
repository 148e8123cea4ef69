"""Market data provider clients."""

from marketfeed.clients.alphavantage import AlphaVantageClient
from marketfeed.clients.base import BaseRestClient
from marketfeed.clients.binance_rest import BinanceRestClient
from marketfeed.clients.binance_ws_kline import (
    BinanceKlineStream,
    KlineSubscription,
    KlineUpdate,
    StreamStatus,
    StreamStatusEvent,
)
from marketfeed.clients.errors import (
    GeoRestrictedError,
    MarketDataError,
    ProviderNotConfiguredError,
    ProviderRequestError,
    RateLimitedError,
    ResponseValidationError,
    TransientTransportError,
    UnauthorizedError,
    UnsupportedTimeframeError,
)
from marketfeed.clients.finnhub import FinnhubClient
from marketfeed.clients.protocol import CandleProvider
from marketfeed.clients.twelvedata import TwelveDataClient

__all__ = [
    "AlphaVantageClient",
    "BaseRestClient",
    "BinanceRestClient",
    "BinanceKlineStream",
    "KlineSubscription",
    "KlineUpdate",
    "StreamStatus",
    "StreamStatusEvent",
    "GeoRestrictedError",
    "MarketDataError",
    "ProviderNotConfiguredError",
    "ProviderRequestError",
    "RateLimitedError",
    "ResponseValidationError",
    "TransientTransportError",
    "UnauthorizedError",
    "UnsupportedTimeframeError",
    "FinnhubClient",
    "CandleProvider",
    "TwelveDataClient",
]
