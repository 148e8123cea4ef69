"""Provider payload validation and transformation into Kline models.

Every ``parse_*`` function either returns a fully valid kline list or raises
ResponseValidationError; nothing partially valid leaves this module.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from signals_core.models.kline import Kline, check_ohlc
from signals_core.models.market import timeframe_to_ms

from marketfeed.clients.errors import (
    ProviderRequestError,
    RateLimitedError,
    ResponseValidationError,
    UnauthorizedError,
)


# =============================================================================
# Helpers
# =============================================================================

def _decimal(provider: str, value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ResponseValidationError(provider, f"{field}: expected number, got {value!r}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ResponseValidationError(provider, f"{field}: not a number: {value!r}") from None
    if not result.is_finite():
        raise ResponseValidationError(provider, f"{field}: non-finite value {value!r}")
    return result


def _int(provider: str, value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ResponseValidationError(provider, f"{field}: expected integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ResponseValidationError(provider, f"{field}: not an integer: {value!r}") from None


def _checked(provider: str, kline: Kline, index: int) -> Kline:
    reason = check_ohlc(kline.open, kline.high, kline.low, kline.close, kline.volume)
    if reason is None and kline.open_time >= kline.close_time:
        reason = "open_time must precede close_time"
    if reason is not None:
        raise ResponseValidationError(provider, f"kline {index}: {reason}")
    return kline


def parse_datetime_ms(provider: str, value: Any) -> int:
    """Parse ``YYYY-MM-DD[ HH:MM[:SS]]`` (UTC) into epoch milliseconds."""
    if not isinstance(value, str):
        raise ResponseValidationError(provider, f"datetime: expected string, got {value!r}")
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            parsed = datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
        return int(parsed.timestamp() * 1000)
    raise ResponseValidationError(provider, f"datetime: unrecognized format {value!r}")


def _bar(
    provider: str,
    symbol: str,
    timeframe: str,
    open_time: int,
    fields: dict[str, Any],
    index: int,
) -> Kline:
    """Build a kline for providers that only report OHLC(V) and a start time."""
    kline = Kline(
        symbol=symbol,
        timeframe=timeframe,
        open_time=open_time,
        open=_decimal(provider, fields["open"], "open"),
        high=_decimal(provider, fields["high"], "high"),
        low=_decimal(provider, fields["low"], "low"),
        close=_decimal(provider, fields["close"], "close"),
        volume=_decimal(provider, fields.get("volume") or 0, "volume"),
        close_time=open_time + timeframe_to_ms(timeframe) - 1,
    )
    return _checked(provider, kline, index)


# =============================================================================
# Binance: fixed-position arrays
# =============================================================================

BINANCE_KLINE_FIELDS = 11


def validate_binance_payload(data: Any) -> None:
    if isinstance(data, dict) and "code" in data:
        raise ProviderRequestError("binance", f"{data.get('code')}: {data.get('msg')}")
    if not isinstance(data, list):
        raise ResponseValidationError("binance", "expected a list of klines")


def parse_binance_klines(data: Any, symbol: str, timeframe: str) -> list[Kline]:
    """Transform ``/api/v3/klines`` rows into klines."""
    validate_binance_payload(data)

    klines = []
    for i, row in enumerate(data):
        if not isinstance(row, list) or len(row) < BINANCE_KLINE_FIELDS:
            raise ResponseValidationError("binance", f"kline {i}: malformed row")
        kline = Kline(
            symbol=symbol,
            timeframe=timeframe,
            open_time=_int("binance", row[0], "open_time"),
            open=_decimal("binance", row[1], "open"),
            high=_decimal("binance", row[2], "high"),
            low=_decimal("binance", row[3], "low"),
            close=_decimal("binance", row[4], "close"),
            volume=_decimal("binance", row[5], "volume"),
            close_time=_int("binance", row[6], "close_time"),
            quote_volume=_decimal("binance", row[7], "quote_volume"),
            trades=_int("binance", row[8], "trades"),
            taker_buy_base_volume=_decimal("binance", row[9], "taker_buy_base_volume"),
            taker_buy_quote_volume=_decimal("binance", row[10], "taker_buy_quote_volume"),
            is_closed=True,
        )
        klines.append(_checked("binance", kline, i))

    klines.sort(key=lambda k: k.open_time)
    return klines


def parse_binance_ws_kline(data: Any, timeframe: str) -> Kline:
    """Transform a ``kline`` stream event into a Kline."""
    if not isinstance(data, dict) or data.get("e") != "kline":
        raise ResponseValidationError("binance", "not a kline event")
    k = data.get("k")
    if not isinstance(k, dict):
        raise ResponseValidationError("binance", "kline event without 'k' object")
    for field in ("t", "T", "o", "h", "l", "c", "v", "x"):
        if field not in k:
            raise ResponseValidationError("binance", f"kline event missing '{field}'")

    kline = Kline(
        symbol=str(data.get("s") or k.get("s", "")),
        timeframe=timeframe,
        open_time=_int("binance", k["t"], "t"),
        open=_decimal("binance", k["o"], "o"),
        high=_decimal("binance", k["h"], "h"),
        low=_decimal("binance", k["l"], "l"),
        close=_decimal("binance", k["c"], "c"),
        volume=_decimal("binance", k["v"], "v"),
        close_time=_int("binance", k["T"], "T"),
        quote_volume=_decimal("binance", k.get("q", 0), "q"),
        trades=_int("binance", k.get("n", 0), "n"),
        taker_buy_base_volume=_decimal("binance", k.get("V", 0), "V"),
        taker_buy_quote_volume=_decimal("binance", k.get("Q", 0), "Q"),
        is_closed=bool(k["x"]),
    )
    return _checked("binance", kline, 0)


# =============================================================================
# Twelve Data: newest-first list of string fields
# =============================================================================

def validate_twelvedata_payload(data: Any) -> None:
    if not isinstance(data, dict):
        raise ResponseValidationError("twelvedata", "expected a JSON object")
    if data.get("status") == "error":
        code = data.get("code")
        message = f"{code}: {data.get('message', 'unknown error')}"
        if code == 429:
            raise RateLimitedError("twelvedata", message, 429)
        if code in (401, 403):
            raise UnauthorizedError("twelvedata", message, code)
        if code in (400, 404):
            raise ProviderRequestError("twelvedata", message, code)
        raise ResponseValidationError("twelvedata", message)
    if not isinstance(data.get("values"), list):
        raise ResponseValidationError("twelvedata", "missing 'values' list")


def parse_twelvedata_values(data: Any, symbol: str, timeframe: str) -> list[Kline]:
    validate_twelvedata_payload(data)

    klines = []
    for i, row in enumerate(data["values"]):
        if not isinstance(row, dict):
            raise ResponseValidationError("twelvedata", f"value {i}: expected object")
        for field in ("datetime", "open", "high", "low", "close"):
            if field not in row:
                raise ResponseValidationError("twelvedata", f"value {i}: missing '{field}'")
        open_time = parse_datetime_ms("twelvedata", row["datetime"])
        klines.append(_bar("twelvedata", symbol, timeframe, open_time, row, i))

    klines.sort(key=lambda k: k.open_time)
    return klines


# =============================================================================
# Alpha Vantage: keyed time-series map
# =============================================================================

def validate_alphavantage_payload(data: Any) -> None:
    if not isinstance(data, dict):
        raise ResponseValidationError("alphavantage", "expected a JSON object")
    if "Error Message" in data:
        raise ProviderRequestError("alphavantage", str(data["Error Message"]))
    # Throttling is reported in a 200 body
    for notice in ("Note", "Information"):
        if notice in data:
            raise RateLimitedError("alphavantage", str(data[notice]))
    if alphavantage_series_key(data) is None:
        raise ResponseValidationError("alphavantage", "missing time series")


def alphavantage_series_key(data: dict[str, Any]) -> str | None:
    for key in data:
        if key.startswith("Time Series FX"):
            return key
    return None


def parse_alphavantage_series(data: Any, symbol: str, timeframe: str) -> list[Kline]:
    validate_alphavantage_payload(data)
    series = data[alphavantage_series_key(data)]
    if not isinstance(series, dict):
        raise ResponseValidationError("alphavantage", "time series is not an object")

    klines = []
    for i, (stamp, row) in enumerate(series.items()):
        if not isinstance(row, dict):
            raise ResponseValidationError("alphavantage", f"bar {stamp}: expected object")
        try:
            fields = {
                "open": row["1. open"],
                "high": row["2. high"],
                "low": row["3. low"],
                "close": row["4. close"],
                "volume": row.get("5. volume", 0),
            }
        except KeyError as e:
            raise ResponseValidationError("alphavantage", f"bar {stamp}: missing {e}") from None
        open_time = parse_datetime_ms("alphavantage", stamp)
        klines.append(_bar("alphavantage", symbol, timeframe, open_time, fields, i))

    klines.sort(key=lambda k: k.open_time)
    return klines


# =============================================================================
# Finnhub: parallel arrays
# =============================================================================

_FINNHUB_ARRAYS = ("o", "h", "l", "c", "t")


def validate_finnhub_payload(data: Any) -> None:
    if not isinstance(data, dict):
        raise ResponseValidationError("finnhub", "expected a JSON object")
    if "error" in data:
        raise ProviderRequestError("finnhub", str(data["error"]))
    status = data.get("s")
    if status == "no_data":
        return
    if status != "ok":
        raise ResponseValidationError("finnhub", f"unexpected status {status!r}")

    lengths = set()
    for field in _FINNHUB_ARRAYS:
        if not isinstance(data.get(field), list):
            raise ResponseValidationError("finnhub", f"missing array '{field}'")
        lengths.add(len(data[field]))
    if isinstance(data.get("v"), list):
        lengths.add(len(data["v"]))
    if len(lengths) != 1:
        raise ResponseValidationError("finnhub", "arrays have different lengths")


def parse_finnhub_candles(data: Any, symbol: str, timeframe: str) -> list[Kline]:
    validate_finnhub_payload(data)
    if data.get("s") == "no_data":
        return []

    volumes = data.get("v") if isinstance(data.get("v"), list) else None
    klines = []
    for i in range(len(data["t"])):
        open_time = _int("finnhub", data["t"][i], "t") * 1000
        fields = {
            "open": data["o"][i],
            "high": data["h"][i],
            "low": data["l"][i],
            "close": data["c"][i],
            "volume": volumes[i] if volumes else 0,
        }
        klines.append(_bar("finnhub", symbol, timeframe, open_time, fields, i))

    klines.sort(key=lambda k: k.open_time)
    return klines
