"""Strategy protocol defining the interface all strategies must implement."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from signals_core.models.indicators import IndicatorConfig, IndicatorSnapshot
from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, Signal


@runtime_checkable
class Strategy(Protocol):
    """Protocol that all signal strategies must implement.

    Strategies are pure: the only state they carry is their configuration
    and a read-only map of backtest metrics keyed
    ``{strategy}_{asset}_{timeframe}``.
    """

    @property
    def name(self) -> str:
        """Unique strategy identifier (e.g., 'daily')."""
        ...

    @property
    def indicator_config(self) -> IndicatorConfig:
        """Indicator configuration used to build snapshots."""
        ...

    @property
    def backtest_metrics(self) -> dict[str, BacktestMetrics]:
        ...

    def evaluate(
        self,
        snapshot: IndicatorSnapshot,
        asset_class: AssetClass,
    ) -> list[Signal]:
        """Run the rule set against one snapshot."""
        ...

    def generate_signals(
        self,
        asset: str,
        asset_class: AssetClass,
        timeframe: str,
        klines: Sequence[Kline],
    ) -> list[Signal]:
        """Compute indicators for ``klines`` and evaluate the rules.

        Returns an empty list when the series is too short.
        """
        ...
