"""Name → strategy class lookup.

Strategies register themselves on import:

    @register_strategy("daily")
    class DailyStrategy(BaseStrategy):
        STRATEGY_NAME = "daily"

The registered name is the prefix of every backtest metrics key
(``{strategy}_{asset}_{timeframe}``), so it must match the class's
``STRATEGY_NAME``; otherwise a strategy would never find its own metrics.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from signals_core.models.signal import BacktestMetrics

if TYPE_CHECKING:
    from signals_core.strategy.base import BaseStrategy

logger = logging.getLogger(__name__)

StrategyT = TypeVar("StrategyT", bound="type[BaseStrategy]")

# Members the Strategy protocol requires of every registered class
REQUIRED_MEMBERS = (
    "name",
    "indicator_config",
    "backtest_metrics",
    "evaluate",
    "generate_signals",
)

_strategies: dict[str, type[BaseStrategy]] = {}


def register_strategy(name: str) -> Callable[[StrategyT], StrategyT]:
    """Class decorator adding a strategy to the registry.

    Raises:
        ValueError: Name already taken, or it differs from the class's
            ``STRATEGY_NAME``.
        TypeError: The class does not implement the Strategy protocol.
    """

    def decorator(cls: StrategyT) -> StrategyT:
        existing = _strategies.get(name)
        if existing is not None and existing is not cls:
            raise ValueError(f"Strategy name '{name}' is taken by {existing.__name__}")

        missing = [member for member in REQUIRED_MEMBERS if not hasattr(cls, member)]
        if missing:
            raise TypeError(f"{cls.__name__} is not a Strategy: missing {', '.join(missing)}")

        declared = getattr(cls, "STRATEGY_NAME", name)
        if declared != name:
            raise ValueError(
                f"{cls.__name__} declares STRATEGY_NAME '{declared}' but is registered as '{name}'"
            )

        _strategies[name] = cls
        logger.debug(f"Registered strategy {name} -> {cls.__name__}")
        return cls

    return decorator


def unregister_strategy(name: str) -> None:
    _strategies.pop(name, None)


def get_strategy_class(name: str) -> type[BaseStrategy]:
    """
    Raises:
        KeyError: Unknown strategy name.
    """
    try:
        return _strategies[name]
    except KeyError:
        registered = ", ".join(list_strategies()) or "none"
        raise KeyError(f"No strategy named '{name}' (registered: {registered})") from None


def create_strategy(
    name: str,
    backtest_metrics: dict[str, BacktestMetrics] | None = None,
    **config_kwargs,
) -> BaseStrategy:
    """Instantiate a registered strategy, optionally with backtest metrics.

    Extra keyword arguments (e.g. ``config=``) go to the constructor.
    """
    return get_strategy_class(name)(backtest_metrics=backtest_metrics, **config_kwargs)


def list_strategies() -> list[str]:
    return sorted(_strategies)
