"""Scalping strategy configuration."""

from pydantic import BaseModel, Field

from signals_core.strategy.signal_factory import TpSlConfig

SCALPING_STRATEGY_NAME = "scalping"


class ScalpingStrategyConfig(BaseModel):
    """Configuration for the scalping strategy."""

    max_signals: int = 3

    ema_fast_period: int = 9
    ema_slow_period: int = 21
    rsi_period: int = 14
    rsi_neutral_low: float = 40.0
    rsi_neutral_high: float = 60.0
    bb_period: int = 20
    bb_std_dev: float = 2.0
    stoch_period: int = 14
    stoch_signal_period: int = 3
    stoch_overbought: float = 80.0
    stoch_oversold: float = 20.0

    # Bollinger squeeze: bands narrower than this fraction of the middle band
    squeeze_bandwidth: float = 0.02
    squeeze_volume_ratio: float = 1.5
    # Stochastic crossover only counts this close to the extremes
    crossover_margin: float = 10.0

    ema_rsi_forex: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pips=15, stop_loss_pips=10)
    )
    ema_rsi_crypto: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.008, stop_loss_pct=0.005)
    )
    bb_squeeze_forex: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pips=20, stop_loss_pips=12)
    )
    bb_squeeze_crypto: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.012, stop_loss_pct=0.006)
    )
    stoch_cross_forex: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pips=12, stop_loss_pips=8)
    )
    stoch_cross_crypto: TpSlConfig = Field(
        default_factory=lambda: TpSlConfig(take_profit_pct=0.006, stop_loss_pct=0.004)
    )
