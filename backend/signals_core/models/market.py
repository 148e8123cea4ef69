"""Asset classes, timeframes and pip sizes shared by every layer."""

from enum import Enum


class AssetClass(str, Enum):
    """Market an asset trades in."""

    CRYPTO = "crypto"
    FOREX = "forex"
    COMMODITY = "commodity"


# Normalized timeframe vocabulary, shortest first
TIMEFRAMES: tuple[str, ...] = ("5m", "15m", "30m", "1h", "4h", "1d")

_TIMEFRAME_MS = {
    "1m": 60_000,
    "5m": 5 * 60_000,
    "15m": 15 * 60_000,
    "30m": 30 * 60_000,
    "1h": 60 * 60_000,
    "4h": 4 * 60 * 60_000,
    "1d": 24 * 60 * 60_000,
}


def timeframe_to_ms(timeframe: str) -> int:
    """Duration of one bar in milliseconds.

    Raises:
        ValueError: If the timeframe is not part of the vocabulary.
    """
    try:
        return _TIMEFRAME_MS[timeframe]
    except KeyError:
        raise ValueError(f"Unknown timeframe: {timeframe}") from None


def pip_size(asset: str) -> float:
    """Price increment of one pip for an asset."""
    if "JPY" in asset:
        return 0.01
    if asset.startswith("XAU"):
        return 0.1
    return 0.0001
