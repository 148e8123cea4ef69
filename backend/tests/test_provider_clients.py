"""Tests for the REST provider clients (HTTP mocked with httpx.MockTransport)."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from marketfeed.clients.alphavantage import AlphaVantageClient, aggregate_klines, split_pair
from marketfeed.clients.binance_rest import BinanceRestClient
from marketfeed.clients.errors import (
    ProviderNotConfiguredError,
    RateLimitedError,
    ResponseValidationError,
    UnsupportedTimeframeError,
)
from marketfeed.clients.finnhub import FinnhubClient, from_finnhub_symbol, to_finnhub_symbol
from marketfeed.clients.twelvedata import TwelveDataClient
from marketfeed.config import (
    AlphaVantageSettings,
    BinanceSettings,
    FinnhubSettings,
    TwelveDataSettings,
)
from signals_core.models.kline import Kline

HOUR_MS = 3_600_000
OPEN_TIME = 1_735_689_600_000  # 2025-01-01 00:00 UTC


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class Recorder:
    """MockTransport handler that records requests and returns one payload."""

    def __init__(self, payload, status: int = 200):
        self.payload = payload
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def binance_rows(count: int, start: int = OPEN_TIME) -> list[list]:
    rows = []
    for i in range(count):
        t = start + i * HOUR_MS
        rows.append([t, "100", "101", "99", "100.5", "10", t + HOUR_MS - 1, "1000", 5, "5", "500", "0"])
    return rows


def hourly_kline(i: int, close: str = "1.1") -> Kline:
    t = OPEN_TIME + i * HOUR_MS
    return Kline(
        symbol="EUR/USD",
        timeframe="1h",
        open_time=t,
        open=Decimal("1.0"),
        high=Decimal("1.2") + Decimal(i) / 100,
        low=Decimal("0.9"),
        close=Decimal(close),
        volume=Decimal("10"),
        close_time=t + HOUR_MS - 1,
    )


# ---------------------------------------------------------------------------
# Shared behaviour (via Binance)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestBaseClientCaching:
    """Cache and configuration checks in BaseRestClient."""

    async def test_second_call_served_from_cache(self):
        recorder = Recorder(binance_rows(3))
        client = BinanceRestClient(BinanceSettings(), transport=recorder.transport)

        first = await client.fetch_candles("BTCUSDT", "1h", limit=3)
        second = await client.fetch_candles("BTCUSDT", "1h", limit=3)

        assert first == second
        assert len(recorder.requests) == 1
        await client.close()

    async def test_different_limit_is_different_key(self):
        recorder = Recorder(binance_rows(3))
        client = BinanceRestClient(BinanceSettings(), transport=recorder.transport)

        await client.fetch_candles("BTCUSDT", "1h", limit=3)
        await client.fetch_candles("BTCUSDT", "1h", limit=2)
        assert len(recorder.requests) == 2

    async def test_invalid_payload_not_cached(self):
        bad = binance_rows(1)
        bad[0][2] = "50"  # high below open
        recorder = Recorder(bad)
        client = BinanceRestClient(BinanceSettings(), transport=recorder.transport)

        for _ in range(2):
            with pytest.raises(ResponseValidationError):
                await client.fetch_candles("BTCUSDT", "1h", limit=1)
        assert len(recorder.requests) == 2
        assert client.cache.size() == 0

    async def test_ranged_query_uses_historical_ttl(self):
        recorder = Recorder(binance_rows(2))
        client = BinanceRestClient(BinanceSettings(), transport=recorder.transport)
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)

        await client.fetch_candles("BTCUSDT", "1h", limit=2, start_time=start)

        (key,) = list(client.cache._entries)
        entry = client.cache.get_entry(key)
        assert entry.expires_at - entry.created_at == pytest.approx(300.0)
        assert "start=" in key

    async def test_unsupported_timeframe(self):
        client = TwelveDataClient(TwelveDataSettings(api_key="k"))
        with pytest.raises(UnsupportedTimeframeError):
            await client.fetch_candles("EUR/USD", "1m")

    async def test_missing_api_key(self):
        client = TwelveDataClient(TwelveDataSettings())
        assert client.enabled is False
        with pytest.raises(ProviderNotConfiguredError):
            await client.fetch_candles("EUR/USD", "1h")


class TestTimeframeMaps:
    """Normalized ⇄ provider interval mapping."""

    def test_twelvedata(self):
        client = TwelveDataClient(TwelveDataSettings(api_key="k"))
        assert client.interval_for("1d") == "1day"
        assert client.timeframe_for("15min") == "15m"

    def test_finnhub(self):
        client = FinnhubClient(FinnhubSettings(api_key="k"))
        assert client.interval_for("4h") == "240"
        assert client.timeframe_for("D") == "1d"

    def test_alphavantage(self):
        client = AlphaVantageClient(AlphaVantageSettings(api_key="k"))
        assert client.interval_for("1h") == "60min"
        assert client.supports("4h")
        assert not client.supports("1m")

    def test_unknown_interval(self):
        client = FinnhubClient(FinnhubSettings(api_key="k"))
        with pytest.raises(UnsupportedTimeframeError):
            client.timeframe_for("W")

    def test_finnhub_symbols(self):
        assert to_finnhub_symbol("EUR/USD") == "OANDA:EUR_USD"
        assert from_finnhub_symbol("OANDA:XAU_USD") == "XAU/USD"

    def test_split_pair(self):
        assert split_pair("GBP/USD") == ("GBP", "USD")


# ---------------------------------------------------------------------------
# Per-provider requests
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestBinanceRestClient:
    async def test_request_params(self):
        recorder = Recorder(binance_rows(2))
        client = BinanceRestClient(BinanceSettings(), transport=recorder.transport)
        await client.fetch_candles("BTCUSDT", "4h", limit=5000)

        params = recorder.requests[0].url.params
        assert recorder.requests[0].url.path == "/api/v3/klines"
        assert params["interval"] == "4h"
        assert params["limit"] == "1000"

    async def test_fetch_all_candles_paginates(self):
        pages = [binance_rows(3), binance_rows(3, OPEN_TIME + 3 * HOUR_MS), []]
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=pages[len(calls) - 1])

        client = BinanceRestClient(BinanceSettings(), transport=httpx.MockTransport(handler))
        klines = await client.fetch_all_candles(
            "BTCUSDT",
            "1h",
            datetime(2025, 1, 1, tzinfo=timezone.utc),
            datetime(2025, 1, 2, tzinfo=timezone.utc),
        )
        assert len(klines) == 6
        assert len(calls) == 3
        assert [k.open_time for k in klines] == sorted({k.open_time for k in klines})


@pytest.mark.asyncio
class TestTwelveDataClient:
    async def test_request_params(self):
        payload = {
            "status": "ok",
            "values": [{"datetime": "2025-01-01 00:00:00", "open": "1", "high": "1.1", "low": "0.9", "close": "1"}],
        }
        recorder = Recorder(payload)
        client = TwelveDataClient(TwelveDataSettings(api_key="secret"), transport=recorder.transport)
        klines = await client.fetch_candles("EUR/USD", "1d", limit=10)

        params = recorder.requests[0].url.params
        assert params["symbol"] == "EUR/USD"
        assert params["interval"] == "1day"
        assert params["outputsize"] == "10"
        assert params["apikey"] == "secret"
        assert len(klines) == 1


@pytest.mark.asyncio
class TestFinnhubClient:
    async def test_no_data_returns_empty(self):
        recorder = Recorder({"s": "no_data"})
        client = FinnhubClient(FinnhubSettings(api_key="k"), transport=recorder.transport)
        assert await client.fetch_candles("EUR/USD", "1h", limit=10) == []
        params = recorder.requests[0].url.params
        assert params["symbol"] == "OANDA:EUR_USD"
        assert params["resolution"] == "60"

    async def test_trims_to_limit(self):
        t0 = OPEN_TIME // 1000
        payload = {
            "s": "ok",
            "t": [t0, t0 + 3600, t0 + 7200],
            "o": [1.0, 1.0, 1.0],
            "h": [1.1, 1.1, 1.1],
            "l": [0.9, 0.9, 0.9],
            "c": [1.0, 1.05, 1.08],
        }
        client = FinnhubClient(FinnhubSettings(api_key="k"), transport=Recorder(payload).transport)
        klines = await client.fetch_candles("EUR/USD", "1h", limit=2)
        assert [float(k.close) for k in klines] == [1.05, 1.08]


@pytest.mark.asyncio
class TestAlphaVantageClient:
    async def test_rate_limit_note_retried_then_surfaced(self):
        recorder = Recorder({"Note": "API call frequency exceeded"})
        settings = AlphaVantageSettings(api_key="k", max_retries=1)
        client = AlphaVantageClient(settings, transport=recorder.transport)

        with patch("marketfeed.clients.transport.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RateLimitedError):
                await client.fetch_candles("EUR/USD", "1h", limit=5)
        assert len(recorder.requests) == 2

    async def test_four_hour_bars_aggregated(self):
        series = {}
        for i in range(8):
            stamp = datetime.fromtimestamp((OPEN_TIME + i * HOUR_MS) / 1000, tz=timezone.utc)
            series[stamp.strftime("%Y-%m-%d %H:%M:%S")] = {
                "1. open": "1.0",
                "2. high": "1.2",
                "3. low": "0.9",
                "4. close": "1.1",
            }
        recorder = Recorder({"Meta Data": {}, "Time Series FX (60min)": series})
        client = AlphaVantageClient(AlphaVantageSettings(api_key="k"), transport=recorder.transport)

        klines = await client.fetch_candles("EUR/USD", "4h", limit=2)

        params = recorder.requests[0].url.params
        assert params["function"] == "FX_INTRADAY"
        assert params["interval"] == "60min"
        assert params["from_symbol"] == "EUR"
        assert len(klines) == 2
        assert all(k.timeframe == "4h" for k in klines)
        assert klines[1].open_time - klines[0].open_time == 4 * HOUR_MS

    async def test_daily_uses_fx_daily(self):
        payload = {
            "Time Series FX (Daily)": {
                "2025-01-01": {"1. open": "1.0", "2. high": "1.2", "3. low": "0.9", "4. close": "1.1"},
            }
        }
        recorder = Recorder(payload)
        client = AlphaVantageClient(AlphaVantageSettings(api_key="k"), transport=recorder.transport)
        klines = await client.fetch_candles("EUR/USD", "1d", limit=1)

        assert recorder.requests[0].url.params["function"] == "FX_DAILY"
        assert "interval" not in recorder.requests[0].url.params
        assert klines[0].timeframe == "1d"


class TestAggregateKlines:
    def test_merges_complete_buckets_only(self):
        klines = [hourly_kline(i, close=f"1.0{i}") for i in range(6)]
        result = aggregate_klines(klines, "4h")

        assert len(result) == 1
        bar = result[0]
        assert bar.open_time == OPEN_TIME
        assert bar.open == Decimal("1.0")
        assert bar.close == Decimal("1.03")
        assert bar.high == Decimal("1.23")
        assert bar.volume == Decimal("40")
        assert bar.close_time == OPEN_TIME + 4 * HOUR_MS - 1

    def test_empty(self):
        assert aggregate_klines([], "4h") == []
