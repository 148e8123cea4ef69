"""Daily strategy configuration."""

from pydantic import BaseModel, Field

from signals_core.strategy.signal_factory import TpSlConfig

DAILY_STRATEGY_NAME = "daily"


class DailyStrategyConfig(BaseModel):
    """Configuration for the daily (swing) strategy."""

    max_signals: int = 3

    ema_fast_period: int = 50
    ema_slow_period: int = 200
    rsi_period: int = 14
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    # Momentum rules also need above-average volume
    momentum_volume_ratio: float = 1.2

    reversal_forex: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.01, stop_loss_pct=0.005)
    )
    reversal_crypto: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.015, stop_loss_pct=0.0075)
    )
    momentum_forex: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.02, stop_loss_pct=0.007)
    )
    momentum_crypto: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.02, stop_loss_pct=0.01)
    )
