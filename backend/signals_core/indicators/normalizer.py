"""Kline → NormalizedKline conversion."""

import logging
from typing import Sequence

from signals_core.models.kline import Kline
from signals_core.models.normalized import NormalizedKline

logger = logging.getLogger(__name__)


def normalize_kline(kline: Kline) -> NormalizedKline:
    """Project a Kline onto floats."""
    return NormalizedKline(
        timestamp=kline.open_time,
        open=float(kline.open),
        high=float(kline.high),
        low=float(kline.low),
        close=float(kline.close),
        volume=float(kline.volume),
    )


def normalize_klines(klines: Sequence[Kline]) -> list[NormalizedKline]:
    """Convert a kline series, dropping implausible bars.

    The result is ordered ascending by open time regardless of input order.
    """
    result: list[NormalizedKline] = []
    dropped = 0
    for kline in klines:
        if not kline.is_valid():
            dropped += 1
            continue
        result.append(normalize_kline(kline))

    if dropped:
        logger.warning(f"Dropped {dropped} invalid klines during normalization")

    result.sort(key=lambda k: k.timestamp)
    return result


def closes(candles: Sequence[NormalizedKline]) -> list[float]:
    return [c.close for c in candles]


def highs(candles: Sequence[NormalizedKline]) -> list[float]:
    return [c.high for c in candles]


def lows(candles: Sequence[NormalizedKline]) -> list[float]:
    return [c.low for c in candles]


def volumes(candles: Sequence[NormalizedKline]) -> list[float]:
    return [c.volume for c in candles]
