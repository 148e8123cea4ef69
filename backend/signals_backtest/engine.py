"""BacktestEngine: walk-forward replay of one strategy over one series.

For each window position ``i`` the strategy sees ``klines[i - window:i]`` as
if it were live at the close of bar ``i - 1``. Every signal it emits is then
resolved against the bars strictly after that point, ``klines[i:]``, capped
at ``max_lookahead_bars``. The window's last bar is the simulated "now";
wall-clock time plays no part, so the same series always yields the same
metrics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics
from signals_core.strategy.protocol import Strategy

from signals_backtest.config import BacktestSettings
from signals_backtest.outcome import TradeResult, simulate_trade
from signals_backtest.stats import calculate_metrics

logger = logging.getLogger(__name__)


@dataclass
class WalkForwardResult:
    """Raw output of one walk-forward pass."""

    strategy: str
    asset: str
    timeframe: str
    windows: int = 0
    trades: list[TradeResult] = field(default_factory=list)

    @property
    def resolved(self) -> list[TradeResult]:
        return [t for t in self.trades if t.is_trade]


class BacktestEngine:
    """Replay a series through a strategy in fixed-size windows."""

    def __init__(self, settings: BacktestSettings | None = None):
        self.settings = settings or BacktestSettings()

    @property
    def window_size(self) -> int:
        return self.settings.window_size

    def walk_forward(
        self,
        strategy: Strategy,
        asset: str,
        asset_class: AssetClass,
        timeframe: str,
        klines: Sequence[Kline],
    ) -> WalkForwardResult:
        result = WalkForwardResult(strategy=strategy.name, asset=asset, timeframe=timeframe)
        window = self.settings.window_size
        step = self.settings.step_for(strategy.name)

        for i in range(window, len(klines), step):
            signals = strategy.generate_signals(asset, asset_class, timeframe, klines[i - window:i])
            result.windows += 1
            if not signals:
                continue

            forward = klines[i:i + self.settings.max_lookahead_bars]
            for signal in signals:
                result.trades.append(simulate_trade(
                    signal,
                    forward,
                    max_bars=self.settings.max_lookahead_bars,
                    commission_pct=self.settings.commission_pct,
                ))

        return result

    def run(
        self,
        strategy: Strategy,
        asset: str,
        asset_class: AssetClass,
        timeframe: str,
        klines: Sequence[Kline],
    ) -> BacktestMetrics | None:
        """
        Backtest one (strategy, asset, timeframe).

        Returns:
            Metrics, or None if the series is shorter than one window or no
            signal resolved to TP/SL.
        """
        if len(klines) < self.settings.window_size:
            logger.info(
                f"[{strategy.name}] {asset} {timeframe}: insufficient data "
                f"({len(klines)} < {self.settings.window_size} bars)"
            )
            return None

        result = self.walk_forward(strategy, asset, asset_class, timeframe, klines)
        resolved = result.resolved
        if not resolved:
            logger.info(
                f"[{strategy.name}] {asset} {timeframe}: no resolved trades "
                f"in {result.windows} windows"
            )
            return None

        metrics = calculate_metrics(resolved, self.settings.initial_equity)
        logger.info(
            f"[{strategy.name}] {asset} {timeframe}: {metrics.total_trades} trades, "
            f"win rate {metrics.win_rate:.1%}, expectancy {metrics.expectancy:+.3f}%"
        )
        return metrics
