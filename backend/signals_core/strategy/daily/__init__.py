"""Daily swing strategy."""

from signals_core.strategy.daily.generator import DailyStrategy
from signals_core.strategy.daily.models import DAILY_STRATEGY_NAME, DailyStrategyConfig

__all__ = ["DailyStrategy", "DailyStrategyConfig", "DAILY_STRATEGY_NAME"]
