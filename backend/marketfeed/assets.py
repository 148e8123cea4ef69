"""Static asset metadata: which provider serves which symbol."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from signals_core.models.market import AssetClass, pip_size


class Provider(str, Enum):
    BINANCE = "binance"
    TWELVEDATA = "twelvedata"
    ALPHAVANTAGE = "alphavantage"
    FINNHUB = "finnhub"


@dataclass(frozen=True, slots=True)
class AssetMetadata:
    symbol: str
    asset_class: AssetClass
    display_name: str
    # Providers in order of preference
    providers: tuple[Provider, ...]
    # Anchor price for synthetic fallback data
    base_price: float

    @property
    def pip_size(self) -> float:
        return pip_size(self.symbol)


_FOREX_PROVIDERS = (Provider.TWELVEDATA, Provider.FINNHUB, Provider.ALPHAVANTAGE)

ASSET_METADATA: dict[str, AssetMetadata] = {
    meta.symbol: meta
    for meta in (
        AssetMetadata("BTCUSDT", AssetClass.CRYPTO, "Bitcoin", (Provider.BINANCE,), 45000.0),
        AssetMetadata("ETHUSDT", AssetClass.CRYPTO, "Ethereum", (Provider.BINANCE,), 2500.0),
        AssetMetadata("SOLUSDT", AssetClass.CRYPTO, "Solana", (Provider.BINANCE,), 100.0),
        AssetMetadata("BNBUSDT", AssetClass.CRYPTO, "BNB", (Provider.BINANCE,), 300.0),
        AssetMetadata("XRPUSDT", AssetClass.CRYPTO, "XRP", (Provider.BINANCE,), 0.6),
        AssetMetadata("EUR/USD", AssetClass.FOREX, "Euro / US Dollar", _FOREX_PROVIDERS, 1.08),
        AssetMetadata("GBP/USD", AssetClass.FOREX, "British Pound / US Dollar", _FOREX_PROVIDERS, 1.27),
        AssetMetadata("USD/JPY", AssetClass.FOREX, "US Dollar / Japanese Yen", _FOREX_PROVIDERS, 150.0),
        AssetMetadata("XAU/USD", AssetClass.COMMODITY, "Gold / US Dollar", _FOREX_PROVIDERS, 2000.0),
    )
}


def get_asset_metadata(symbol: str) -> AssetMetadata:
    """Look up metadata for a symbol.

    Raises:
        KeyError: If the symbol is not supported.
    """
    try:
        return ASSET_METADATA[symbol]
    except KeyError:
        raise KeyError(f"Unsupported symbol: {symbol}") from None


def symbols_for(asset_class: AssetClass) -> list[str]:
    return [s for s, meta in ASSET_METADATA.items() if meta.asset_class == asset_class]


# =============================================================================
# Cache TTL by volatility class
# =============================================================================

SCALPING_TTL = 60.0
INTRADAY_TTL = 300.0

_TTL_BY_TIMEFRAME: dict[str, float] = {
    "1m": SCALPING_TTL,
    "5m": SCALPING_TTL,
    "15m": SCALPING_TTL,
    "30m": SCALPING_TTL,
    "1h": INTRADAY_TTL,
    "4h": INTRADAY_TTL,
}


def cache_ttl_for(timeframe: str) -> tuple[float | None, bool]:
    """TTL for a "latest N bars" query.

    Returns:
        (ttl_seconds, midnight_utc). Daily bars expire at the next UTC
        midnight; unknown timeframes return (None, False) so the cache
        default applies.
    """
    if timeframe == "1d":
        return None, True
    return _TTL_BY_TIMEFRAME.get(timeframe), False
