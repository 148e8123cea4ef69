"""Signal and backtest metric data models."""

import hashlib
from enum import Enum
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict


class SignalType(str, Enum):
    """Trade direction of a signal."""

    BUY = "BUY"
    SELL = "SELL"


class SignalStatus(str, Enum):
    """Lifecycle status.

    Signals are always emitted as ACTIVE; FILLED and CLOSED are set by
    whoever persists them.
    """

    ACTIVE = "active"
    FILLED = "filled"
    CLOSED = "closed"


def _generate_signal_id(
    strategy: str, asset: str, timeframe: str, signal_time: int, signal_type: str
) -> str:
    """Generate deterministic signal ID based on signal attributes.

    The same bar evaluated twice (live or in a backtest replay) yields the
    same ID, so downstream storage can deduplicate.
    """
    key = f"{strategy}:{asset}:{timeframe}:{signal_time}:{signal_type}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class Signal(BaseModel):
    """Trading signal handed to persistence/notification collaborators."""

    model_config = ConfigDict(frozen=True)

    id: str = ""  # Will be set in model_post_init
    strategy: str
    asset: str
    timeframe: str
    signal_type: SignalType
    entry_price: float
    take_profit: float
    stop_loss: float
    status: SignalStatus = SignalStatus.ACTIVE
    signal_time: int  # open time (epoch ms) of the bar that produced the signal
    metadata: str = "{}"

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_signal_id(
                    self.strategy,
                    self.asset,
                    self.timeframe,
                    self.signal_time,
                    self.signal_type.value,
                ),
            )

    @property
    def risk_amount(self) -> float:
        """Get the risk amount (distance to stop loss)."""
        return abs(self.entry_price - self.stop_loss)

    @property
    def reward_amount(self) -> float:
        """Get the reward amount (distance to take profit)."""
        return abs(self.take_profit - self.entry_price)

    @property
    def risk_reward_ratio(self) -> float:
        if self.risk_amount == 0:
            return 0.0
        return self.reward_amount / self.risk_amount

    def metadata_dict(self) -> dict[str, Any]:
        """Decode the JSON metadata string."""
        return orjson.loads(self.metadata)


def metrics_key(strategy: str, asset: str, timeframe: str) -> str:
    """Key under which backtest metrics are stored."""
    return f"{strategy}_{asset}_{timeframe}"


class BacktestMetrics(BaseModel):
    """Aggregate walk-forward results for one (strategy, asset, timeframe).

    win_rate is a fraction in [0, 1]; expectancy, avg_win and avg_loss are
    per-trade percentage returns after commission.
    """

    model_config = ConfigDict(frozen=True)

    win_rate: float
    total_trades: int
    expectancy: float
    avg_win: float
    avg_loss: float
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    net_profit: float = 0.0
    final_equity: float = 0.0
