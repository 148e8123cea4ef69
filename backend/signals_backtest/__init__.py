"""Walk-forward backtesting for signals_core strategies."""

from signals_backtest.config import BacktestSettings, get_backtest_settings
from signals_backtest.engine import BacktestEngine, WalkForwardResult
from signals_backtest.outcome import Outcome, TradeResult, simulate_trade
from signals_backtest.runner import BacktestRunner, KlineSource
from signals_backtest.stats import calculate_metrics

__all__ = [
    "BacktestSettings",
    "get_backtest_settings",
    "BacktestEngine",
    "WalkForwardResult",
    "Outcome",
    "TradeResult",
    "simulate_trade",
    "BacktestRunner",
    "KlineSource",
    "calculate_metrics",
]
