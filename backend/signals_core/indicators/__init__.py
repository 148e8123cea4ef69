"""Technical indicators (pure math, no I/O)."""

from signals_core.indicators.indicators import (
    atr,
    bollinger_bands,
    ema,
    macd,
    rsi,
    sma,
    stochastic,
    true_range,
    wilder_smooth,
)
from signals_core.indicators.normalizer import normalize_kline, normalize_klines
from signals_core.indicators.snapshot import (
    calculate_atr,
    calculate_bollinger_bands,
    calculate_macd,
    calculate_moving_averages,
    calculate_rsi,
    calculate_stochastic,
    calculate_volume,
    compute_indicators,
    compute_multi_timeframe_indicators,
)

__all__ = [
    "atr",
    "bollinger_bands",
    "ema",
    "macd",
    "rsi",
    "sma",
    "stochastic",
    "true_range",
    "wilder_smooth",
    "normalize_kline",
    "normalize_klines",
    "calculate_atr",
    "calculate_bollinger_bands",
    "calculate_macd",
    "calculate_moving_averages",
    "calculate_rsi",
    "calculate_stochastic",
    "calculate_volume",
    "compute_indicators",
    "compute_multi_timeframe_indicators",
]
