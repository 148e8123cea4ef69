"""Numeric projection of klines used by the indicator engine.

Plain slotted dataclass with floats: indicator math runs over thousands of
bars per backtest window, so the pydantic/Decimal model is converted once.
"""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class NormalizedKline:
    """Float OHLCV bar, timestamp in epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float
