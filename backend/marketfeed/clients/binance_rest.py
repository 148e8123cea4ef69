"""Binance spot REST API client for fetching klines."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from signals_core.models.kline import Kline

from marketfeed.clients.base import BaseRestClient
from marketfeed.clients.validators import parse_binance_klines, validate_binance_payload

logger = logging.getLogger(__name__)

MAX_LIMIT = 1000


class BinanceRestClient(BaseRestClient):
    """Binance spot market data client (public endpoints, no key needed)."""

    NAME = "binance"
    REQUIRES_API_KEY = False
    TIMEFRAME_MAP = {
        "1m": "1m",
        "5m": "5m",
        "15m": "15m",
        "30m": "30m",
        "1h": "1h",
        "4h": "4h",
        "1d": "1d",
    }

    def _headers(self) -> dict[str, str]:
        if self.settings.api_key:
            return {"X-MBX-APIKEY": self.settings.api_key}
        return {}

    async def _fetch(
        self,
        symbol: str,
        timeframe: str,
        limit: int | None,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> list[Kline]:
        if limit is not None and limit > MAX_LIMIT and start_time is None:
            return await self._fetch_latest(symbol, timeframe, limit, end_time)

        params: dict[str, Any] = {
            "symbol": symbol,
            "interval": self.interval_for(timeframe),
            "limit": min(limit or 500, MAX_LIMIT),
        }
        if start_time:
            params["startTime"] = int(start_time.timestamp() * 1000)
        if end_time:
            params["endTime"] = int(end_time.timestamp() * 1000)

        data = await self.transport.get_json(
            "/api/v3/klines", params, validate=validate_binance_payload
        )
        return parse_binance_klines(data, symbol, timeframe)

    async def _fetch_latest(
        self,
        symbol: str,
        timeframe: str,
        limit: int,
        end_time: datetime | None,
    ) -> list[Kline]:
        """Page backwards with ``endTime`` until ``limit`` bars are collected."""
        klines: list[Kline] = []
        end_ms = int(end_time.timestamp() * 1000) if end_time else None

        while len(klines) < limit:
            page_size = min(limit - len(klines), MAX_LIMIT)
            params: dict[str, Any] = {
                "symbol": symbol,
                "interval": self.interval_for(timeframe),
                "limit": page_size,
            }
            if end_ms is not None:
                params["endTime"] = end_ms

            data = await self.transport.get_json(
                "/api/v3/klines", params, validate=validate_binance_payload
            )
            page = parse_binance_klines(data, symbol, timeframe)
            received = len(page)
            if klines:
                page = [k for k in page if k.open_time < klines[0].open_time]
            if not page:
                break

            klines = page + klines
            end_ms = page[0].open_time - 1
            # A short page means no older history
            if received < page_size:
                break

        logger.debug(f"Fetched {len(klines)} {symbol} {timeframe} klines in pages")
        return klines[-limit:]

    async def fetch_all_candles(
        self,
        symbol: str,
        timeframe: str,
        start_time: datetime,
        end_time: datetime | None = None,
    ) -> list[Kline]:
        """
        Fetch all klines in a time range, handling pagination.

        Args:
            symbol: Trading pair
            timeframe: Kline timeframe
            start_time: Start time
            end_time: End time (defaults to now)

        Returns:
            List of all klines in the range, ascending and de-duplicated
        """
        if end_time is None:
            end_time = datetime.now(timezone.utc)
        end_ms = int(end_time.timestamp() * 1000)

        all_klines: list[Kline] = []
        current_start = start_time

        while current_start < end_time:
            klines = await self.fetch_candles(
                symbol,
                timeframe,
                limit=MAX_LIMIT,
                start_time=current_start,
                end_time=end_time,
            )
            if not klines:
                break

            if all_klines:
                last_seen = all_klines[-1].open_time
                klines = [k for k in klines if k.open_time > last_seen]
            all_klines.extend(klines)

            if len(klines) < 2:
                break

            # Move start time to after the last kline
            last_open = all_klines[-1].open_time
            if last_open >= end_ms:
                break
            current_start = datetime.fromtimestamp((last_open + 1) / 1000, tz=timezone.utc)

        logger.info(f"Downloaded {len(all_klines)} {symbol} {timeframe} klines")
        return all_klines
