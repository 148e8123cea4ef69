"""Kline-based outcome determination for backtesting.

Rules:
- BUY: high >= take_profit → TP, low <= stop_loss → SL
- SELL: low <= take_profit → TP, high >= stop_loss → SL
- Both hit on the same kline → SL (pessimistic assumption)
- Nothing hit within the look-ahead cap → OPEN, not counted as a trade
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from signals_core.models.kline import Kline
from signals_core.models.signal import Signal, SignalType


class Outcome(str, Enum):
    TP = "tp"  # Take profit hit
    SL = "sl"  # Stop loss hit
    OPEN = "open"  # Neither level reached within the look-ahead window


@dataclass(slots=True, frozen=True)
class TradeResult:
    signal: Signal
    outcome: Outcome
    exit_price: float | None = None
    exit_time: int | None = None
    bars_held: int = 0
    pnl_pct: float = 0.0  # after commission

    @property
    def is_trade(self) -> bool:
        return self.outcome != Outcome.OPEN


def check_kline(signal: Signal, kline: Kline) -> Outcome | None:
    """Check if a signal hits TP or SL on this kline."""
    high = float(kline.high)
    low = float(kline.low)

    if signal.signal_type == SignalType.BUY:
        tp_hit = high >= signal.take_profit
        sl_hit = low <= signal.stop_loss
    else:
        tp_hit = low <= signal.take_profit
        sl_hit = high >= signal.stop_loss

    if sl_hit:
        # Pessimistic: SL wins a same-bar tie
        return Outcome.SL
    if tp_hit:
        return Outcome.TP
    return None


def trade_pnl_pct(signal: Signal, exit_price: float, commission_pct: float) -> float:
    """Percentage return of a trade net of commission."""
    if signal.signal_type == SignalType.BUY:
        gross = (exit_price - signal.entry_price) / signal.entry_price * 100
    else:
        gross = (signal.entry_price - exit_price) / signal.entry_price * 100
    return gross - commission_pct * 100


def simulate_trade(
    signal: Signal,
    forward_klines: Sequence[Kline],
    max_bars: int = 50,
    commission_pct: float = 0.001,
) -> TradeResult:
    """Walk bars after the signal until TP or SL is touched.

    ``forward_klines`` must start strictly after the bar that produced the
    signal; only the first ``max_bars`` are inspected.
    """
    for bars_held, kline in enumerate(forward_klines[:max_bars], start=1):
        outcome = check_kline(signal, kline)
        if outcome is None:
            continue
        exit_price = signal.take_profit if outcome == Outcome.TP else signal.stop_loss
        return TradeResult(
            signal=signal,
            outcome=outcome,
            exit_price=exit_price,
            exit_time=kline.open_time,
            bars_held=bars_held,
            pnl_pct=trade_pnl_pct(signal, exit_price, commission_pct),
        )
    return TradeResult(signal=signal, outcome=Outcome.OPEN)
