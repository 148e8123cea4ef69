"""Statistics for backtest results.

P&L is tracked in percent of entry per trade. Equity compounds each trade
from a fixed starting balance, which gives the max drawdown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from signals_core.models.signal import BacktestMetrics

from signals_backtest.outcome import Outcome, TradeResult

# Reported when there are wins but no losses
PROFIT_FACTOR_CAP = 999.0


@dataclass
class EquityCurve:
    initial: float = 10_000.0
    equity: float = 0.0
    peak: float = 0.0
    max_drawdown: float = 0.0  # percent
    points: list[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.equity = self.initial
        self.peak = self.initial

    def apply(self, pnl_pct: float) -> None:
        self.equity += self.equity * pnl_pct / 100
        self.points.append(self.equity)
        if self.equity > self.peak:
            self.peak = self.equity
        drawdown = (self.peak - self.equity) / self.peak * 100
        if drawdown > self.max_drawdown:
            self.max_drawdown = drawdown


def calculate_metrics(
    trades: Sequence[TradeResult],
    initial_equity: float = 10_000.0,
) -> BacktestMetrics:
    """Aggregate resolved trades; OPEN results are ignored."""
    curve = EquityCurve(initial=initial_equity)
    wins = 0
    losses = 0
    total_profit = 0.0
    total_loss = 0.0

    for trade in trades:
        if trade.outcome == Outcome.TP:
            wins += 1
            total_profit += trade.pnl_pct
        elif trade.outcome == Outcome.SL:
            losses += 1
            total_loss += abs(trade.pnl_pct)
        else:
            continue
        curve.apply(trade.pnl_pct)

    total = wins + losses
    net_profit = total_profit - total_loss
    if total_loss > 0:
        profit_factor = total_profit / total_loss
    else:
        profit_factor = PROFIT_FACTOR_CAP if total_profit > 0 else 0.0

    return BacktestMetrics(
        win_rate=wins / total if total else 0.0,
        total_trades=total,
        expectancy=net_profit / total if total else 0.0,
        avg_win=total_profit / wins if wins else 0.0,
        avg_loss=total_loss / losses if losses else 0.0,
        profit_factor=profit_factor,
        max_drawdown=curve.max_drawdown,
        net_profit=net_profit,
        final_equity=curve.equity,
    )
