"""Indicator snapshots: the latest value of each indicator for a series.

Each ``calculate_*`` function returns None instead of raising when the
series is too short, so callers never see a partially computed snapshot.
"""

from __future__ import annotations

import logging
from typing import Sequence

from signals_core.indicators.indicators import (
    atr,
    bollinger_bands,
    ema,
    last_value,
    macd,
    rsi,
    sma,
    stochastic,
)
from signals_core.indicators.normalizer import (
    closes,
    highs,
    lows,
    normalize_klines,
    volumes,
)
from signals_core.models.indicators import (
    AtrSnapshot,
    BollingerSnapshot,
    IndicatorConfig,
    IndicatorSnapshot,
    MacdSnapshot,
    RsiSnapshot,
    StochasticSnapshot,
    VolumeSnapshot,
)
from signals_core.models.kline import Kline
from signals_core.models.normalized import NormalizedKline

logger = logging.getLogger(__name__)


def calculate_rsi(
    candles: Sequence[NormalizedKline],
    period: int = 14,
    overbought: float = 70.0,
    oversold: float = 30.0,
) -> RsiSnapshot | None:
    if len(candles) < period + 1:
        return None
    value = last_value(rsi(closes(candles), period))
    if value is None:
        return None
    return RsiSnapshot(
        value=value,
        period=period,
        overbought=value > overbought,
        oversold=value < oversold,
    )


def calculate_macd(
    candles: Sequence[NormalizedKline],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MacdSnapshot | None:
    if len(candles) < slow_period + signal_period:
        return None
    macd_line, signal_line, histogram = macd(
        closes(candles), fast_period, slow_period, signal_period
    )
    line = last_value(macd_line)
    signal = last_value(signal_line)
    hist = last_value(histogram)
    if line is None or signal is None or hist is None:
        return None
    return MacdSnapshot(
        macd=line,
        signal=signal,
        histogram=hist,
        bullish=hist > 0 and line > signal,
        bearish=hist < 0 and line < signal,
    )


def calculate_bollinger_bands(
    candles: Sequence[NormalizedKline],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerSnapshot | None:
    if len(candles) < period:
        return None
    upper_s, middle_s, lower_s = bollinger_bands(closes(candles), period, std_dev)
    upper = last_value(upper_s)
    middle = last_value(middle_s)
    lower = last_value(lower_s)
    if upper is None or middle is None or lower is None:
        return None

    price = candles[-1].close
    span = upper - lower
    return BollingerSnapshot(
        upper=upper,
        middle=middle,
        lower=lower,
        bandwidth=span / middle if middle != 0 else 0.0,
        # Flat window: price sits on the middle band
        percent_b=(price - lower) / span if span != 0 else 0.5,
    )


def calculate_moving_averages(
    candles: Sequence[NormalizedKline],
    periods: Sequence[int],
    kind: str = "sma",
) -> dict[int, float]:
    """SMA or EMA for each period; periods longer than the series are omitted."""
    func = sma if kind == "sma" else ema
    values = closes(candles)
    result: dict[int, float] = {}
    for period in periods:
        if period > len(values):
            continue
        value = last_value(func(values, period))
        if value is not None:
            result[period] = value
    return result


def calculate_atr(
    candles: Sequence[NormalizedKline],
    period: int = 14,
) -> AtrSnapshot | None:
    if len(candles) < period + 1:
        return None
    value = last_value(atr(highs(candles), lows(candles), closes(candles), period))
    if value is None:
        return None
    return AtrSnapshot(value=value, period=period)


def calculate_volume(
    candles: Sequence[NormalizedKline],
    period: int = 20,
) -> VolumeSnapshot | None:
    if len(candles) < period:
        return None
    average = last_value(sma(volumes(candles), period))
    if average is None:
        return None
    current = candles[-1].volume
    return VolumeSnapshot(
        current=current,
        average=average,
        ratio=current / average if average > 0 else 0.0,
    )


def calculate_stochastic(
    candles: Sequence[NormalizedKline],
    period: int = 14,
    signal_period: int = 3,
    overbought: float = 80.0,
    oversold: float = 20.0,
) -> StochasticSnapshot | None:
    if len(candles) < period + signal_period - 1:
        return None
    k_s, d_s = stochastic(highs(candles), lows(candles), closes(candles), period, signal_period)
    k = last_value(k_s)
    d = last_value(d_s)
    if k is None or d is None:
        return None
    return StochasticSnapshot(k=k, d=d, overbought=k > overbought, oversold=k < oversold)


# =============================================================================
# Composition
# =============================================================================

def compute_indicators(
    klines: Sequence[Kline],
    asset: str,
    timeframe: str,
    config: IndicatorConfig | None = None,
) -> IndicatorSnapshot | None:
    """Build a full snapshot for the last bar of ``klines``.

    Returns None if the (validated) series is shorter than the longest
    window any configured indicator needs.
    """
    config = config or IndicatorConfig()
    candles = normalize_klines(klines)

    required = config.required_length()
    if len(candles) < required:
        logger.debug(
            f"Insufficient data for {asset} {timeframe}: "
            f"{len(candles)} bars, need {required}"
        )
        return None

    rsi_snap = calculate_rsi(
        candles, config.rsi.period, config.rsi.overbought, config.rsi.oversold
    )
    macd_snap = calculate_macd(
        candles,
        config.macd.fast_period,
        config.macd.slow_period,
        config.macd.signal_period,
    )
    bb_snap = calculate_bollinger_bands(
        candles, config.bollinger_bands.period, config.bollinger_bands.std_dev
    )
    atr_snap = calculate_atr(candles, config.atr.period)
    volume_snap = calculate_volume(candles, config.volume.period)

    if rsi_snap is None or macd_snap is None or bb_snap is None:
        return None
    if atr_snap is None or volume_snap is None:
        return None

    stoch_snap = None
    if config.stochastic is not None:
        stoch_snap = calculate_stochastic(
            candles,
            config.stochastic.period,
            config.stochastic.signal_period,
            config.stochastic.overbought,
            config.stochastic.oversold,
        )
        if stoch_snap is None:
            return None

    last = candles[-1]
    return IndicatorSnapshot(
        timestamp=last.timestamp,
        asset=asset,
        timeframe=timeframe,
        price=last.close,
        rsi=rsi_snap,
        macd=macd_snap,
        bollinger_bands=bb_snap,
        sma=calculate_moving_averages(candles, config.sma.periods, "sma"),
        ema=calculate_moving_averages(candles, config.ema.periods, "ema"),
        atr=atr_snap,
        volume=volume_snap,
        stochastic=stoch_snap,
    )


def compute_multi_timeframe_indicators(
    klines_by_timeframe: dict[str, Sequence[Kline]],
    asset: str,
    config: IndicatorConfig | None = None,
) -> dict[str, IndicatorSnapshot]:
    """Snapshots keyed ``{asset}_{timeframe}``; short timeframes are skipped."""
    result: dict[str, IndicatorSnapshot] = {}
    for timeframe, klines in klines_by_timeframe.items():
        snapshot = compute_indicators(klines, asset, timeframe, config)
        if snapshot is None:
            logger.debug(f"Skipping {asset} {timeframe}: insufficient data")
            continue
        result[f"{asset}_{timeframe}"] = snapshot
    return result
