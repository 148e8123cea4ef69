"""Finnhub REST client (forex candles via OANDA symbols)."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from signals_core.models.kline import Kline
from signals_core.models.market import timeframe_to_ms

from marketfeed.clients.base import BaseRestClient
from marketfeed.clients.validators import parse_finnhub_candles, validate_finnhub_payload

DEFAULT_BARS = 300


def to_finnhub_symbol(symbol: str) -> str:
    """``EUR/USD`` -> ``OANDA:EUR_USD``."""
    return f"OANDA:{symbol.replace('/', '_')}"


def from_finnhub_symbol(symbol: str) -> str:
    """``OANDA:EUR_USD`` -> ``EUR/USD``."""
    return symbol.split(":", 1)[-1].replace("_", "/")


class FinnhubClient(BaseRestClient):
    """``/forex/candle`` client returning parallel OHLCV arrays."""

    NAME = "finnhub"
    TIMEFRAME_MAP = {
        "5m": "5",
        "15m": "15",
        "30m": "30",
        "1h": "60",
        "4h": "240",
        "1d": "D",
    }

    async def _fetch(
        self,
        symbol: str,
        timeframe: str,
        limit: int | None,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> list[Kline]:
        bars = limit or DEFAULT_BARS
        to_ts = int(end_time.timestamp()) if end_time else int(time.time())
        if start_time:
            from_ts = int(start_time.timestamp())
        else:
            from_ts = to_ts - bars * timeframe_to_ms(timeframe) // 1000

        params: dict[str, Any] = {
            "symbol": to_finnhub_symbol(symbol),
            "resolution": self.interval_for(timeframe),
            "from": from_ts,
            "to": to_ts,
            "token": self.settings.api_key,
        }
        data = await self.transport.get_json(
            "/forex/candle", params, validate=validate_finnhub_payload
        )
        klines = parse_finnhub_candles(data, symbol, timeframe)
        if limit and start_time is None:
            klines = klines[-limit:]
        return klines
