"""Twelve Data REST client (forex and commodities)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from signals_core.models.kline import Kline

from marketfeed.clients.base import BaseRestClient
from marketfeed.clients.validators import (
    parse_twelvedata_values,
    validate_twelvedata_payload,
)

MAX_OUTPUT_SIZE = 5000
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TwelveDataClient(BaseRestClient):
    """``/time_series`` client. Symbols are already in ``EUR/USD`` form."""

    NAME = "twelvedata"
    TIMEFRAME_MAP = {
        "5m": "5min",
        "15m": "15min",
        "30m": "30min",
        "1h": "1h",
        "4h": "4h",
        "1d": "1day",
    }

    async def _fetch(
        self,
        symbol: str,
        timeframe: str,
        limit: int | None,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> list[Kline]:
        params: dict[str, Any] = {
            "symbol": symbol,
            "interval": self.interval_for(timeframe),
            "outputsize": min(limit or 300, MAX_OUTPUT_SIZE),
            "timezone": "UTC",
            "format": "JSON",
            "apikey": self.settings.api_key,
        }
        if start_time:
            params["start_date"] = start_time.strftime(DATE_FORMAT)
        if end_time:
            params["end_date"] = end_time.strftime(DATE_FORMAT)

        data = await self.transport.get_json(
            "/time_series", params, validate=validate_twelvedata_payload
        )
        return parse_twelvedata_values(data, symbol, timeframe)
