"""Scalping strategy for 5m-1h bars.

Three independent rule families, evaluated in order:
1. EMA/RSI momentum: EMA9 vs EMA21 trend, RSI in the neutral band, MACD
   confirmation and a stochastic extreme.
2. Bollinger squeeze: narrow bands, price at a band edge, MACD and a volume
   surge.
3. Stochastic crossover near an extreme, in the EMA trend direction.

Forex targets are in pips, crypto targets in percent.
"""

import logging

from signals_core.models.indicators import (
    BollingerConfig,
    IndicatorConfig,
    IndicatorSnapshot,
    MovingAverageConfig,
    RsiConfig,
    StochasticConfig,
)
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, Signal, SignalType
from signals_core.strategy.base import BaseStrategy
from signals_core.strategy.registry import register_strategy
from signals_core.strategy.scalping.models import (
    SCALPING_STRATEGY_NAME,
    ScalpingStrategyConfig,
)
from signals_core.strategy.signal_factory import TpSlConfig, create_signal

logger = logging.getLogger(__name__)


@register_strategy(SCALPING_STRATEGY_NAME)
class ScalpingStrategy(BaseStrategy):
    """Short-horizon EMA/RSI, Bollinger squeeze and stochastic rules."""

    STRATEGY_NAME = SCALPING_STRATEGY_NAME

    def __init__(
        self,
        config: ScalpingStrategyConfig | None = None,
        backtest_metrics: dict[str, BacktestMetrics] | None = None,
    ):
        super().__init__(backtest_metrics)
        self.config = config or ScalpingStrategyConfig()
        self._indicator_config = IndicatorConfig(
            ema=MovingAverageConfig(
                periods=[self.config.ema_fast_period, self.config.ema_slow_period]
            ),
            sma=MovingAverageConfig(periods=[self.config.bb_period]),
            rsi=RsiConfig(period=self.config.rsi_period),
            bollinger_bands=BollingerConfig(
                period=self.config.bb_period, std_dev=self.config.bb_std_dev
            ),
            stochastic=StochasticConfig(
                period=self.config.stoch_period,
                signal_period=self.config.stoch_signal_period,
                overbought=self.config.stoch_overbought,
                oversold=self.config.stoch_oversold,
            ),
        )

    @property
    def indicator_config(self) -> IndicatorConfig:
        return self._indicator_config

    def evaluate(
        self,
        snapshot: IndicatorSnapshot,
        asset_class: AssetClass,
    ) -> list[Signal]:
        ema_fast = snapshot.ema.get(self.config.ema_fast_period)
        ema_slow = snapshot.ema.get(self.config.ema_slow_period)
        stoch = snapshot.stochastic
        if ema_fast is None or ema_slow is None or stoch is None:
            return []

        cfg = self.config
        crypto = asset_class == AssetClass.CRYPTO
        ema_bull = ema_fast > ema_slow
        ema_bear = ema_fast < ema_slow
        rsi_neutral = cfg.rsi_neutral_low < snapshot.rsi.value < cfg.rsi_neutral_high
        macd = snapshot.macd
        bb = snapshot.bollinger_bands
        volume_ratio = snapshot.volume.ratio

        squeeze = bb.bandwidth < cfg.squeeze_bandwidth
        bull_cross = stoch.k > stoch.d and stoch.k < cfg.stoch_oversold + cfg.crossover_margin
        bear_cross = stoch.k < stoch.d and stoch.k > cfg.stoch_overbought - cfg.crossover_margin

        # (signal type, rule name, tp/sl, rule flag) in evaluation order
        fired: list[tuple[SignalType, str, TpSlConfig, str]] = []

        ema_rsi = cfg.ema_rsi_crypto if crypto else cfg.ema_rsi_forex
        if ema_bull and rsi_neutral and macd.bullish and stoch.k < cfg.stoch_oversold:
            fired.append((SignalType.BUY, "ema_rsi", ema_rsi, "ema_signal"))
        if ema_bear and rsi_neutral and macd.bearish and stoch.k > cfg.stoch_overbought:
            fired.append((SignalType.SELL, "ema_rsi", ema_rsi, "ema_signal"))

        bb_squeeze = cfg.bb_squeeze_crypto if crypto else cfg.bb_squeeze_forex
        volume_surge = volume_ratio > cfg.squeeze_volume_ratio
        if squeeze and bb.percent_b < 0.2 and macd.bullish and volume_surge:
            fired.append((SignalType.BUY, "bb_squeeze", bb_squeeze, "bb_signal"))
        if squeeze and bb.percent_b > 0.8 and macd.bearish and volume_surge:
            fired.append((SignalType.SELL, "bb_squeeze", bb_squeeze, "bb_signal"))

        stoch_cross = cfg.stoch_cross_crypto if crypto else cfg.stoch_cross_forex
        if bull_cross and ema_bull:
            fired.append((SignalType.BUY, "stoch_crossover", stoch_cross, "stoch_signal"))
        if bear_cross and ema_bear:
            fired.append((SignalType.SELL, "stoch_crossover", stoch_cross, "stoch_signal"))

        metrics = self.metrics_for(snapshot.asset, snapshot.timeframe)
        signals: list[Signal] = []
        for signal_type, rule, tpsl, flag in fired[: cfg.max_signals]:
            indicators = self._indicator_values(snapshot, **{flag: True})
            indicators["stochastic"] = {"k": stoch.k, "d": stoch.d}
            indicators["bollinger_bands"] = {
                "bandwidth": bb.bandwidth,
                "percent_b": bb.percent_b,
            }
            signals.append(
                create_signal(
                    strategy=self.name,
                    asset=snapshot.asset,
                    timeframe=snapshot.timeframe,
                    asset_class=asset_class,
                    signal_type=signal_type,
                    entry_price=snapshot.price,
                    signal_time=snapshot.timestamp,
                    indicators=indicators,
                    tpsl=tpsl,
                    backtest_metrics=metrics,
                    extra_metadata={"rule": rule},
                )
            )
            logger.info(
                f"Scalping {rule} {signal_type.value}: "
                f"{snapshot.asset} {snapshot.timeframe} @ {snapshot.price}"
            )

        return signals
