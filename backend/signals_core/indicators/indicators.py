"""Technical indicator series (pure NumPy).

Every function takes plain float sequences and returns a numpy array of the
same length as the input, with NaN for bars that do not have enough history
yet. Seeding follows the usual charting conventions: EMA starts from the SMA
of the first ``period`` values, RSI and ATR use Wilder smoothing seeded from
a simple average.
"""

from typing import Sequence

import numpy as np


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


# =============================================================================
# Moving averages
# =============================================================================

def sma(values: Sequence[float], period: int) -> np.ndarray:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        Array of SMA values (NaN for the first period-1 entries)
    """
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period:
        return result

    cumsum = np.cumsum(np.insert(arr, 0, 0.0))
    result[period - 1:] = (cumsum[period:] - cumsum[:-period]) / period
    return result


def ema(values: Sequence[float], period: int) -> np.ndarray:
    """
    Calculate Exponential Moving Average.

    The first defined value is the SMA of the first ``period`` values.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        Array of EMA values (NaN for the first period-1 entries)
    """
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period:
        return result

    multiplier = 2.0 / (period + 1)
    result[period - 1] = np.mean(arr[:period])
    for i in range(period, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)
    return result


def wilder_smooth(values: Sequence[float], period: int) -> np.ndarray:
    """Wilder's running average (RMA) seeded with a simple average."""
    arr = _as_array(values)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period:
        return result

    result[period - 1] = np.mean(arr[:period])
    for i in range(period, len(arr)):
        result[i] = (result[i - 1] * (period - 1) + arr[i]) / period
    return result


# =============================================================================
# Oscillators
# =============================================================================

def rsi(closes: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    Needs period+1 closes for the first value. A window without losses
    reads 100, a flat window reads 50.

    Args:
        closes: Sequence of close prices
        period: RSI period

    Returns:
        Array of RSI values in [0, 100]
    """
    arr = _as_array(closes)
    result = np.full(arr.shape, np.nan)
    if period <= 0 or len(arr) < period + 1:
        return result

    deltas = np.diff(arr)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = wilder_smooth(gains, period)
    avg_loss = wilder_smooth(losses, period)

    for i in range(period - 1, len(deltas)):
        gain = avg_gain[i]
        loss = avg_loss[i]
        if loss == 0:
            value = 50.0 if gain == 0 else 100.0
        else:
            value = 100.0 - 100.0 / (1.0 + gain / loss)
        result[i + 1] = value
    return result


def macd(
    closes: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate MACD line, signal line and histogram.

    The signal line is an EMA of the defined part of the MACD line, so the
    first full triple appears at index slow_period + signal_period - 2.

    Returns:
        Tuple of (macd_line, signal_line, histogram) arrays
    """
    arr = _as_array(closes)
    macd_line = ema(arr, fast_period) - ema(arr, slow_period)
    signal_line = np.full(arr.shape, np.nan)

    start = slow_period - 1
    if len(arr) >= slow_period:
        signal_line[start:] = ema(macd_line[start:], signal_period)

    histogram = macd_line - signal_line
    return macd_line, signal_line, histogram


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
    signal_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Calculate the stochastic oscillator.

    %K = 100 * (close - lowest low) / (highest high - lowest low), 50 when
    the range is zero; %D = SMA(%K, signal_period).

    Returns:
        Tuple of (k, d) arrays
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    k = np.full(c.shape, np.nan)

    for i in range(period - 1, len(c)):
        highest = np.max(h[i - period + 1 : i + 1])
        lowest = np.min(l[i - period + 1 : i + 1])
        span = highest - lowest
        k[i] = 50.0 if span == 0 else 100.0 * (c[i] - lowest) / span

    d = np.full(c.shape, np.nan)
    if len(c) >= period:
        d[period - 1:] = sma(k[period - 1:], signal_period)
    return k, d


# =============================================================================
# Volatility
# =============================================================================

def bollinger_bands(
    closes: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate Bollinger Bands using the population standard deviation.

    Returns:
        Tuple of (upper, middle, lower) arrays
    """
    arr = _as_array(closes)
    middle = sma(arr, period)
    sigma = np.full(arr.shape, np.nan)
    for i in range(period - 1, len(arr)):
        sigma[i] = np.std(arr[i - period + 1 : i + 1])

    return middle + std_dev * sigma, middle, middle - std_dev * sigma


def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> np.ndarray:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close)).
    The first bar has no previous close and is NaN.
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    result = np.full(h.shape, np.nan)
    if len(h) < 2:
        return result

    prev_close = c[:-1]
    result[1:] = np.maximum.reduce([
        h[1:] - l[1:],
        np.abs(h[1:] - prev_close),
        np.abs(l[1:] - prev_close),
    ])
    return result


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> np.ndarray:
    """
    Calculate Average True Range (Wilder smoothing).

    Needs period+1 bars for the first value.
    """
    tr = true_range(highs, lows, closes)
    result = np.full(tr.shape, np.nan)
    if len(tr) < period + 1:
        return result
    result[1:] = wilder_smooth(tr[1:], period)
    return result


def last_value(series: np.ndarray) -> float | None:
    """Last element of a series, or None if it is missing/NaN."""
    if len(series) == 0:
        return None
    value = float(series[-1])
    if np.isnan(value):
        return None
    return value
