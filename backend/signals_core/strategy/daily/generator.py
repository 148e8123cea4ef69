"""Daily swing strategy.

Trend and reversal rules on 4h/1d bars:
- Reversal BUY: (EMA50 > EMA200 or RSI oversold) + MACD bullish + RSI oversold
- Reversal SELL: mirror with RSI overbought
- Momentum BUY: EMA50 > EMA200 + MACD bullish + RSI not oversold + volume surge
- Momentum SELL: mirror

Every signal carries a three-step take-profit ladder. This module is pure
business logic with no I/O dependencies.
"""

import logging

from signals_core.models.indicators import (
    IndicatorConfig,
    IndicatorSnapshot,
    MovingAverageConfig,
    RsiConfig,
)
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, Signal, SignalType
from signals_core.strategy.base import BaseStrategy
from signals_core.strategy.daily.models import DAILY_STRATEGY_NAME, DailyStrategyConfig
from signals_core.strategy.registry import register_strategy
from signals_core.strategy.signal_factory import TpSlConfig, create_multi_target_signal

logger = logging.getLogger(__name__)


@register_strategy(DAILY_STRATEGY_NAME)
class DailyStrategy(BaseStrategy):
    """EMA trend + RSI extreme + MACD confirmation on higher timeframes."""

    STRATEGY_NAME = DAILY_STRATEGY_NAME

    def __init__(
        self,
        config: DailyStrategyConfig | None = None,
        backtest_metrics: dict[str, BacktestMetrics] | None = None,
    ):
        super().__init__(backtest_metrics)
        self.config = config or DailyStrategyConfig()
        self._indicator_config = IndicatorConfig(
            ema=MovingAverageConfig(
                periods=[self.config.ema_fast_period, self.config.ema_slow_period, 9, 21]
            ),
            rsi=RsiConfig(
                period=self.config.rsi_period,
                overbought=self.config.rsi_overbought,
                oversold=self.config.rsi_oversold,
            ),
        )

    @property
    def indicator_config(self) -> IndicatorConfig:
        return self._indicator_config

    def _tpsl(self, asset_class: AssetClass, momentum: bool) -> TpSlConfig:
        if asset_class == AssetClass.CRYPTO:
            return self.config.momentum_crypto if momentum else self.config.reversal_crypto
        return self.config.momentum_forex if momentum else self.config.reversal_forex

    def evaluate(
        self,
        snapshot: IndicatorSnapshot,
        asset_class: AssetClass,
    ) -> list[Signal]:
        ema_fast = snapshot.ema.get(self.config.ema_fast_period)
        ema_slow = snapshot.ema.get(self.config.ema_slow_period)
        if ema_fast is None or ema_slow is None:
            logger.debug(f"Missing EMA data for {snapshot.asset} {snapshot.timeframe}")
            return []

        rsi = snapshot.rsi
        macd = snapshot.macd
        volume_ratio = snapshot.volume.ratio
        metrics = self.metrics_for(snapshot.asset, snapshot.timeframe)

        trend_up = ema_fast > ema_slow
        trend_down = ema_fast < ema_slow
        rsi_low = rsi.value < self.config.rsi_oversold
        rsi_high = rsi.value > self.config.rsi_overbought

        # (signal type, momentum rule, ema flag) in evaluation order
        fired: list[tuple[SignalType, bool, bool]] = []
        if (trend_up or rsi_low) and macd.bullish and rsi.oversold:
            fired.append((SignalType.BUY, False, trend_up))
        if (trend_down or rsi_high) and macd.bearish and rsi.overbought:
            fired.append((SignalType.SELL, False, trend_down))
        if (
            trend_up
            and macd.bullish
            and not rsi.oversold
            and volume_ratio > self.config.momentum_volume_ratio
        ):
            fired.append((SignalType.BUY, True, trend_up))
        if (
            trend_down
            and macd.bearish
            and not rsi.overbought
            and volume_ratio > self.config.momentum_volume_ratio
        ):
            fired.append((SignalType.SELL, True, trend_down))

        signals: list[Signal] = []
        for signal_type, momentum, ema_flag in fired[: self.config.max_signals]:
            indicators = self._indicator_values(
                snapshot,
                ema_signal=ema_flag,
                ema_fast=ema_fast,
                ema_slow=ema_slow,
                rsi_extreme=rsi_low if signal_type == SignalType.BUY else rsi_high,
            )
            aligned = trend_up if signal_type == SignalType.BUY else trend_down
            signal = create_multi_target_signal(
                strategy=self.name,
                asset=snapshot.asset,
                timeframe=snapshot.timeframe,
                asset_class=asset_class,
                signal_type=signal_type,
                entry_price=snapshot.price,
                signal_time=snapshot.timestamp,
                indicators=indicators,
                tpsl=self._tpsl(asset_class, momentum),
                backtest_metrics=metrics,
                trend_alignment=1.0 if aligned else 0.0,
                extra_metadata={"rule": "momentum" if momentum else "reversal"},
            )
            signals.append(signal)
            logger.info(
                f"Daily {'momentum ' if momentum else ''}{signal_type.value}: "
                f"{snapshot.asset} {snapshot.timeframe} @ {snapshot.price}"
            )

        return signals
