"""K-line (candlestick) data models."""

from __future__ import annotations

import math
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


def check_ohlc(
    open_: Decimal | float,
    high: Decimal | float,
    low: Decimal | float,
    close: Decimal | float,
    volume: Decimal | float,
) -> str | None:
    """Sanity-check one OHLCV bar.

    Returns a human readable reason when the bar is implausible, None when
    it is fine. Shared by every provider validator so the candle invariant
    is enforced in exactly one place.
    """
    values = (open_, high, low, close, volume)
    for value in values:
        if isinstance(value, Decimal):
            if not value.is_finite():
                return "non-finite value"
        elif isinstance(value, float) and not math.isfinite(value):
            return "non-finite value"

    if min(open_, high, low, close) <= 0:
        return "prices must be positive"
    if volume < 0:
        return "volume must be non-negative"
    if high < low:
        return "high < low"
    if high < open_ or high < close:
        return "high below open/close"
    if low > open_ or low > close:
        return "low above open/close"
    return None


class Kline(BaseModel):
    """K-line (candlestick) data model.

    Times are epoch milliseconds. Prices and volumes keep the provider's
    decimal precision and serialize back to decimal strings.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    timeframe: str
    open_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int
    quote_volume: Decimal = Decimal("0")
    trades: int = 0
    taker_buy_base_volume: Decimal = Decimal("0")
    taker_buy_quote_volume: Decimal = Decimal("0")
    is_closed: bool = True

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def body_size(self) -> Decimal:
        """Get the absolute size of the candle body."""
        return abs(self.close - self.open)

    @property
    def range_size(self) -> Decimal:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low

    def is_valid(self) -> bool:
        """True when the bar satisfies the OHLC invariant and time ordering."""
        if self.open_time >= self.close_time:
            return False
        return check_ohlc(self.open, self.high, self.low, self.close, self.volume) is None
