"""Alpha Vantage REST client (FX intraday and daily series)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from signals_core.models.kline import Kline
from signals_core.models.market import timeframe_to_ms

from marketfeed.clients.base import BaseRestClient
from marketfeed.clients.validators import (
    parse_alphavantage_series,
    validate_alphavantage_payload,
)

# "compact" returns the latest 100 points
COMPACT_SIZE = 100
# 4h bars are built from this many 60min bars
HOURS_PER_4H = 4


def split_pair(symbol: str) -> tuple[str, str]:
    """``EUR/USD`` -> (``EUR``, ``USD``)."""
    base, _, quote = symbol.partition("/")
    return base, quote


def aggregate_klines(klines: list[Kline], timeframe: str) -> list[Kline]:
    """Merge ascending klines into ``timeframe`` buckets aligned to UTC.

    Only complete buckets are kept.
    """
    bucket_ms = timeframe_to_ms(timeframe)
    if not klines:
        return []
    source_ms = klines[0].close_time - klines[0].open_time + 1
    per_bucket = bucket_ms // source_ms

    buckets: dict[int, list[Kline]] = {}
    for kline in klines:
        buckets.setdefault(kline.open_time - kline.open_time % bucket_ms, []).append(kline)

    result = []
    for start, group in sorted(buckets.items()):
        if len(group) < per_bucket:
            continue
        result.append(
            Kline(
                symbol=group[0].symbol,
                timeframe=timeframe,
                open_time=start,
                open=group[0].open,
                high=max(k.high for k in group),
                low=min(k.low for k in group),
                close=group[-1].close,
                volume=sum((k.volume for k in group), Decimal("0")),
                close_time=start + bucket_ms - 1,
                trades=sum(k.trades for k in group),
            )
        )
    return result


class AlphaVantageClient(BaseRestClient):
    """``/query`` client for ``FX_INTRADAY`` and ``FX_DAILY``."""

    NAME = "alphavantage"
    # 4h has no native interval; it is aggregated from 60min
    TIMEFRAME_MAP = {
        "5m": "5min",
        "15m": "15min",
        "30m": "30min",
        "1h": "60min",
        "4h": "60min",
        "1d": "daily",
    }

    async def _fetch(
        self,
        symbol: str,
        timeframe: str,
        limit: int | None,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> list[Kline]:
        base, quote = split_pair(symbol)
        source_tf = "1h" if timeframe == "4h" else timeframe
        wanted = (limit or COMPACT_SIZE) * (HOURS_PER_4H if timeframe == "4h" else 1)
        ranged = start_time is not None or end_time is not None

        params: dict[str, Any] = {
            "from_symbol": base,
            "to_symbol": quote,
            "outputsize": "full" if ranged or wanted > COMPACT_SIZE else "compact",
            "apikey": self.settings.api_key,
        }
        if timeframe == "1d":
            params["function"] = "FX_DAILY"
        else:
            params["function"] = "FX_INTRADAY"
            params["interval"] = self.interval_for(timeframe)

        data = await self.transport.get_json(
            "/query", params, validate=validate_alphavantage_payload
        )
        klines = parse_alphavantage_series(data, symbol, source_tf)
        if timeframe == "4h":
            klines = aggregate_klines(klines, "4h")

        if start_time:
            start_ms = int(start_time.timestamp() * 1000)
            klines = [k for k in klines if k.open_time >= start_ms]
        if end_time:
            end_ms = int(end_time.timestamp() * 1000)
            klines = [k for k in klines if k.open_time <= end_ms]
        if limit and not ranged:
            klines = klines[-limit:]
        return klines
