"""Shared plumbing for snapshot-driven strategies."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from signals_core.indicators.snapshot import compute_indicators
from signals_core.models.indicators import IndicatorConfig, IndicatorSnapshot
from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, Signal, metrics_key

logger = logging.getLogger(__name__)


class BaseStrategy:
    """Computes a snapshot and hands it to ``evaluate``.

    Subclasses set ``STRATEGY_NAME`` and implement ``indicator_config`` and
    ``evaluate``. ``evaluate`` must return at most ``max_signals`` signals
    in rule order.
    """

    STRATEGY_NAME = ""

    def __init__(self, backtest_metrics: dict[str, BacktestMetrics] | None = None):
        self._backtest_metrics = dict(backtest_metrics or {})

    @property
    def name(self) -> str:
        return self.STRATEGY_NAME

    @property
    def backtest_metrics(self) -> dict[str, BacktestMetrics]:
        return self._backtest_metrics

    @property
    def indicator_config(self) -> IndicatorConfig:
        raise NotImplementedError

    def metrics_for(self, asset: str, timeframe: str) -> BacktestMetrics | None:
        return self._backtest_metrics.get(metrics_key(self.name, asset, timeframe))

    def evaluate(
        self,
        snapshot: IndicatorSnapshot,
        asset_class: AssetClass,
    ) -> list[Signal]:
        raise NotImplementedError

    def generate_signals(
        self,
        asset: str,
        asset_class: AssetClass,
        timeframe: str,
        klines: Sequence[Kline],
    ) -> list[Signal]:
        snapshot = compute_indicators(klines, asset, timeframe, self.indicator_config)
        if snapshot is None:
            return []
        return self.evaluate(snapshot, asset_class)

    @staticmethod
    def _indicator_values(snapshot: IndicatorSnapshot, **flags: Any) -> dict[str, Any]:
        """Indicator values recorded in signal metadata."""
        values: dict[str, Any] = {
            "rsi": snapshot.rsi.value,
            "macd": {
                "macd": snapshot.macd.macd,
                "signal": snapshot.macd.signal,
                "histogram": snapshot.macd.histogram,
                "bullish": snapshot.macd.bullish,
                "bearish": snapshot.macd.bearish,
            },
            "ema": {str(period): value for period, value in snapshot.ema.items()},
            "atr": snapshot.atr.value,
            "volume_ratio": snapshot.volume.ratio,
        }
        values.update(flags)
        return values
