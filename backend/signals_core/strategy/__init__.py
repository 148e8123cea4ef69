"""Strategy plugin system.

Public API:
- Strategy: Protocol that all strategies must implement
- BaseStrategy: snapshot-driven base class
- register_strategy / create_strategy / list_strategies / get_strategy_class /
  unregister_strategy
- signal factory helpers

Importing this package auto-registers all built-in strategies.
"""

from signals_core.strategy.protocol import Strategy
from signals_core.strategy.base import BaseStrategy
from signals_core.strategy.registry import (
    register_strategy,
    create_strategy,
    list_strategies,
    get_strategy_class,
    unregister_strategy,
)
from signals_core.strategy.signal_factory import (
    TpSlConfig,
    calculate_confidence,
    calculate_indicator_confluence,
    calculate_multiple_targets,
    calculate_tpsl,
    calculate_tpsl_pips,
    confidence_to_stars,
    create_multi_target_signal,
    create_signal,
)

# Import built-in strategies to trigger auto-registration
from signals_core.strategy.daily import DailyStrategy, DailyStrategyConfig  # noqa: E402
from signals_core.strategy.scalping import ScalpingStrategy, ScalpingStrategyConfig  # noqa: E402

__all__ = [
    "Strategy",
    "BaseStrategy",
    "register_strategy",
    "create_strategy",
    "list_strategies",
    "get_strategy_class",
    "unregister_strategy",
    "TpSlConfig",
    "calculate_confidence",
    "calculate_indicator_confluence",
    "calculate_multiple_targets",
    "calculate_tpsl",
    "calculate_tpsl_pips",
    "confidence_to_stars",
    "create_multi_target_signal",
    "create_signal",
    "DailyStrategy",
    "DailyStrategyConfig",
    "ScalpingStrategy",
    "ScalpingStrategyConfig",
]
