"""Core data models (pure, no I/O)."""

from signals_core.models.kline import Kline, check_ohlc
from signals_core.models.market import AssetClass, TIMEFRAMES, pip_size, timeframe_to_ms
from signals_core.models.normalized import NormalizedKline
from signals_core.models.signal import (
    BacktestMetrics,
    Signal,
    SignalStatus,
    SignalType,
    metrics_key,
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

__all__ = [
    "Kline",
    "check_ohlc",
    "AssetClass",
    "TIMEFRAMES",
    "pip_size",
    "timeframe_to_ms",
    "NormalizedKline",
    "BacktestMetrics",
    "Signal",
    "SignalStatus",
    "SignalType",
    "metrics_key",
    "AtrSnapshot",
    "BollingerSnapshot",
    "IndicatorConfig",
    "IndicatorSnapshot",
    "MacdSnapshot",
    "RsiSnapshot",
    "StochasticSnapshot",
    "VolumeSnapshot",
]
