"""Tests for the daily swing strategy."""

from decimal import Decimal

import pytest

from signals_core.models.indicators import (
    AtrSnapshot,
    BollingerSnapshot,
    IndicatorSnapshot,
    MacdSnapshot,
    RsiSnapshot,
    VolumeSnapshot,
)
from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, SignalType
from signals_core.strategy import Strategy, create_strategy, list_strategies
from signals_core.strategy.daily import DailyStrategy, DailyStrategyConfig

HOUR_MS = 3_600_000
OPEN_TIME = 1_735_689_600_000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_snapshot(
    asset: str = "BTCUSDT",
    timeframe: str = "4h",
    price: float = 100.0,
    rsi: float = 50.0,
    bullish: bool = False,
    bearish: bool = False,
    ema_fast: float = 100.0,
    ema_slow: float = 100.0,
    volume_ratio: float = 1.0,
) -> IndicatorSnapshot:
    """Snapshot with neutral defaults; override only what a rule needs."""
    histogram = 0.5 if bullish else -0.5 if bearish else 0.0
    return IndicatorSnapshot(
        timestamp=OPEN_TIME,
        asset=asset,
        timeframe=timeframe,
        price=price,
        rsi=RsiSnapshot(value=rsi, period=14, overbought=rsi > 70, oversold=rsi < 30),
        macd=MacdSnapshot(
            macd=histogram,
            signal=0.0,
            histogram=histogram,
            bullish=bullish,
            bearish=bearish,
        ),
        bollinger_bands=BollingerSnapshot(
            upper=price * 1.02, middle=price, lower=price * 0.98, bandwidth=0.04, percent_b=0.5
        ),
        sma={20: price},
        ema={50: ema_fast, 200: ema_slow},
        atr=AtrSnapshot(value=price * 0.01, period=14),
        volume=VolumeSnapshot(current=100.0 * volume_ratio, average=100.0, ratio=volume_ratio),
    )


def bullish_series(n: int = 250, surge: float = 3.0) -> list[Kline]:
    """Steady 1% per bar climb with a volume spike on the last bar."""
    klines = []
    price = 100.0
    for i in range(n):
        open_ = price
        close = price * 1.01
        t = OPEN_TIME + i * 4 * HOUR_MS
        klines.append(
            Kline(
                symbol="BTCUSDT",
                timeframe="4h",
                open_time=t,
                open=Decimal(f"{open_:.8f}"),
                high=Decimal(f"{close * 1.001:.8f}"),
                low=Decimal(f"{open_ * 0.999:.8f}"),
                close=Decimal(f"{close:.8f}"),
                volume=Decimal(str(100.0 * surge if i == n - 1 else 100.0)),
                close_time=t + 4 * HOUR_MS - 1,
            )
        )
        price = close
    return klines


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class TestRegistration:
    def test_registered(self):
        assert "daily" in list_strategies()
        strategy = create_strategy("daily")
        assert isinstance(strategy, DailyStrategy)
        assert isinstance(strategy, Strategy)
        assert strategy.name == "daily"

    def test_indicator_config(self):
        config = DailyStrategy().indicator_config
        assert 50 in config.ema.periods and 200 in config.ema.periods
        assert config.required_length() == 200


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

class TestRules:
    """One snapshot per rule."""

    def test_reversal_buy(self):
        snapshot = make_snapshot(rsi=25.0, bullish=True, ema_fast=105.0, ema_slow=100.0)
        signals = DailyStrategy().evaluate(snapshot, AssetClass.CRYPTO)

        assert len(signals) == 1
        signal = signals[0]
        assert signal.signal_type == SignalType.BUY
        assert signal.metadata_dict()["rule"] == "reversal"
        # Reversal crypto: 1.5% ladder top, 0.75% stop
        assert signal.take_profit == pytest.approx(101.5)
        assert signal.stop_loss == pytest.approx(99.25)

    def test_reversal_buy_without_trend_when_oversold(self):
        snapshot = make_snapshot(rsi=20.0, bullish=True, ema_fast=95.0, ema_slow=100.0)
        signals = DailyStrategy().evaluate(snapshot, AssetClass.CRYPTO)
        assert [s.signal_type for s in signals] == [SignalType.BUY]
        assert signals[0].metadata_dict()["indicators"]["ema_signal"] is False

    def test_reversal_sell(self):
        snapshot = make_snapshot(asset="EUR/USD", price=1.1, rsi=78.0, bearish=True, ema_fast=1.0, ema_slow=1.2)
        signals = DailyStrategy().evaluate(snapshot, AssetClass.FOREX)

        assert [s.signal_type for s in signals] == [SignalType.SELL]
        assert signals[0].take_profit == pytest.approx(1.089)
        assert signals[0].stop_loss == pytest.approx(1.1055)

    def test_momentum_sell_forex(self):
        snapshot = make_snapshot(
            asset="EUR/USD", price=1.1, rsi=45.0, bearish=True, ema_fast=1.0, ema_slow=1.2, volume_ratio=1.5
        )
        signals = DailyStrategy().evaluate(snapshot, AssetClass.FOREX)

        assert len(signals) == 1
        signal = signals[0]
        assert signal.signal_type == SignalType.SELL
        assert signal.metadata_dict()["rule"] == "momentum"
        assert signal.take_profit == pytest.approx(1.1 * 0.98)
        assert signal.stop_loss == pytest.approx(1.1 * 1.007)

    def test_momentum_needs_volume(self):
        snapshot = make_snapshot(rsi=55.0, bullish=True, ema_fast=105.0, ema_slow=100.0, volume_ratio=1.1)
        assert DailyStrategy().evaluate(snapshot, AssetClass.CRYPTO) == []

    def test_neutral_snapshot_no_signal(self):
        assert DailyStrategy().evaluate(make_snapshot(), AssetClass.CRYPTO) == []

    def test_missing_ema_no_signal(self):
        snapshot = make_snapshot(rsi=25.0, bullish=True).model_copy(update={"ema": {50: 1.0}})
        assert DailyStrategy().evaluate(snapshot, AssetClass.CRYPTO) == []

    def test_custom_volume_threshold(self):
        config = DailyStrategyConfig(momentum_volume_ratio=1.05)
        snapshot = make_snapshot(rsi=55.0, bullish=True, ema_fast=105.0, ema_slow=100.0, volume_ratio=1.1)
        assert len(DailyStrategy(config).evaluate(snapshot, AssetClass.CRYPTO)) == 1


class TestBacktestMetricsWiring:
    def test_metrics_flow_into_metadata(self):
        metrics = {
            "daily_BTCUSDT_4h": BacktestMetrics(
                win_rate=0.6, total_trades=25, expectancy=0.4, avg_win=1.5, avg_loss=1.0
            )
        }
        strategy = DailyStrategy(backtest_metrics=metrics)
        snapshot = make_snapshot(rsi=25.0, bullish=True, ema_fast=105.0, ema_slow=100.0)
        meta = strategy.evaluate(snapshot, AssetClass.CRYPTO)[0].metadata_dict()

        assert meta["backtest_win_rate"] == 0.6
        assert meta["backtest_trades"] == 25

    def test_other_timeframe_metrics_ignored(self):
        metrics = {
            "daily_BTCUSDT_1d": BacktestMetrics(
                win_rate=0.9, total_trades=10, expectancy=1.0, avg_win=2.0, avg_loss=1.0
            )
        }
        strategy = DailyStrategy(backtest_metrics=metrics)
        snapshot = make_snapshot(rsi=25.0, bullish=True, ema_fast=105.0, ema_slow=100.0)
        meta = strategy.evaluate(snapshot, AssetClass.CRYPTO)[0].metadata_dict()
        assert meta["backtest_win_rate"] is None


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestGenerateSignals:
    """Klines → indicators → signals."""

    def test_bullish_series_produces_momentum_buy(self):
        klines = bullish_series()
        signals = DailyStrategy().generate_signals("BTCUSDT", AssetClass.CRYPTO, "4h", klines)

        assert len(signals) == 1
        signal = signals[0]
        assert signal.signal_type == SignalType.BUY
        assert signal.take_profit > signal.entry_price > signal.stop_loss
        assert signal.risk_reward_ratio == pytest.approx(2.0)
        assert signal.entry_price == pytest.approx(float(klines[-1].close))
        assert signal.signal_time == klines[-1].open_time

    def test_insufficient_data_returns_empty(self):
        klines = bullish_series(150)
        assert DailyStrategy().generate_signals("BTCUSDT", AssetClass.CRYPTO, "4h", klines) == []

    def test_same_bar_same_id(self):
        klines = bullish_series()
        a = DailyStrategy().generate_signals("BTCUSDT", AssetClass.CRYPTO, "4h", klines)
        b = DailyStrategy().generate_signals("BTCUSDT", AssetClass.CRYPTO, "4h", klines)
        assert [s.id for s in a] == [s.id for s in b]
