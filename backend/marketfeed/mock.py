"""Deterministic synthetic klines used when no provider can answer."""

from __future__ import annotations

import random
import time
import zlib
from decimal import Decimal

from signals_core.models.kline import Kline
from signals_core.models.market import timeframe_to_ms

VOLATILITY = 0.01
WICK = 0.002


def _dec(value: float, places: int = 8) -> Decimal:
    return Decimal(f"{value:.{places}f}")


def mock_seed(symbol: str, timeframe: str, base_price: float) -> int:
    return zlib.crc32(f"{symbol}:{timeframe}:{base_price}".encode())


def generate_mock_klines(
    symbol: str,
    timeframe: str,
    limit: int,
    base_price: float,
    now_ms: int | None = None,
) -> list[Kline]:
    """Synthetic bars scattered around ``base_price``.

    Prices depend only on (symbol, timeframe, base_price), so repeated
    calls return the same series; bar times end at the current bucket.
    """
    rng = random.Random(mock_seed(symbol, timeframe, base_price))
    tf_ms = timeframe_to_ms(timeframe)
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    last_open = now_ms - now_ms % tf_ms

    klines = []
    for i in range(limit - 1, -1, -1):
        open_time = last_open - i * tf_ms
        open_ = base_price * (1 + (rng.random() - 0.5) * VOLATILITY)
        close = open_ * (1 + (rng.random() - 0.5) * VOLATILITY)
        high = max(open_, close) * (1 + WICK)
        low = min(open_, close) * (1 - WICK)
        volume = rng.random() * 1_000_000
        klines.append(
            Kline(
                symbol=symbol,
                timeframe=timeframe,
                open_time=open_time,
                open=_dec(open_),
                high=_dec(high),
                low=_dec(low),
                close=_dec(close),
                volume=_dec(volume, 2),
                close_time=open_time + tf_ms - 1,
                quote_volume=_dec(volume * close, 2),
                trades=rng.randrange(10_000),
                taker_buy_base_volume=_dec(volume / 2, 2),
                taker_buy_quote_volume=_dec(volume * close / 2, 2),
            )
        )
    return klines
