"""Scalping strategy."""

from signals_core.strategy.scalping.generator import ScalpingStrategy
from signals_core.strategy.scalping.models import (
    SCALPING_STRATEGY_NAME,
    ScalpingStrategyConfig,
)

__all__ = ["ScalpingStrategy", "ScalpingStrategyConfig", "SCALPING_STRATEGY_NAME"]
