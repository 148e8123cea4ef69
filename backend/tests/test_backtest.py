"""Tests for the walk-forward backtester."""

from decimal import Decimal

import pytest

from marketfeed.mock import generate_mock_klines
from signals_backtest.config import BacktestSettings
from signals_backtest.engine import BacktestEngine
from signals_backtest.outcome import Outcome, TradeResult, check_kline, simulate_trade
from signals_backtest.runner import BacktestRunner
from signals_backtest.stats import PROFIT_FACTOR_CAP, calculate_metrics
from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass
from signals_core.models.signal import Signal, SignalType
from signals_core.strategy.daily import DailyStrategy

HOUR_MS = 3_600_000
OPEN_TIME = 1_735_689_600_000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_kline(i: int, high: str = "100.5", low: str = "99.5", close: str = "100") -> Kline:
    t = OPEN_TIME + i * HOUR_MS
    return Kline(
        symbol="BTCUSDT",
        timeframe="1h",
        open_time=t,
        open=Decimal("100"),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
        volume=Decimal("10"),
        close_time=t + HOUR_MS - 1,
    )


def flat_series(n: int) -> list[Kline]:
    return [make_kline(i) for i in range(n)]


def make_signal(
    signal_type: SignalType = SignalType.BUY,
    entry: float = 100.0,
    tp: float = 102.0,
    sl: float = 99.0,
    signal_time: int = OPEN_TIME,
) -> Signal:
    return Signal(
        strategy="fake",
        asset="BTCUSDT",
        timeframe="1h",
        signal_type=signal_type,
        entry_price=entry,
        take_profit=tp,
        stop_loss=sl,
        signal_time=signal_time,
    )


def make_trade(outcome: Outcome, pnl: float) -> TradeResult:
    return TradeResult(signal=make_signal(), outcome=outcome, pnl_pct=pnl)


class FakeStrategy:
    """Emits one BUY per window at the window's last close."""

    def __init__(self, name: str = "daily", tp: float = 102.0, sl: float = 99.0):
        self.name = name
        self.tp = tp
        self.sl = sl
        self.windows: list[list[Kline]] = []

    def generate_signals(self, asset, asset_class, timeframe, klines):
        self.windows.append(list(klines))
        last = klines[-1]
        return [make_signal(entry=float(last.close), tp=self.tp, sl=self.sl, signal_time=last.open_time)]


# ---------------------------------------------------------------------------
# Outcome determination
# ---------------------------------------------------------------------------

class TestCheckKline:
    """TP/SL detection on a single bar."""

    def test_buy_tp(self):
        assert check_kline(make_signal(), make_kline(0, high="102.0")) == Outcome.TP

    def test_buy_sl(self):
        assert check_kline(make_signal(), make_kline(0, low="99.0")) == Outcome.SL

    def test_sell_tp(self):
        signal = make_signal(SignalType.SELL, tp=98.0, sl=101.0)
        assert check_kline(signal, make_kline(0, low="98.0")) == Outcome.TP

    def test_sell_sl(self):
        signal = make_signal(SignalType.SELL, tp=98.0, sl=101.0)
        assert check_kline(signal, make_kline(0, high="101.5")) == Outcome.SL

    def test_both_hit_is_sl(self):
        """Pessimistic: a bar touching both levels counts as a loss."""
        assert check_kline(make_signal(), make_kline(0, high="103", low="98")) == Outcome.SL

    def test_neither(self):
        assert check_kline(make_signal(), make_kline(0)) is None


class TestSimulateTrade:
    def test_first_touch_wins(self):
        forward = [make_kline(1), make_kline(2, high="102.5"), make_kline(3, low="98")]
        result = simulate_trade(make_signal(), forward)

        assert result.outcome == Outcome.TP
        assert result.bars_held == 2
        assert result.exit_price == 102.0
        assert result.exit_time == forward[1].open_time
        # 2% gross minus 0.1% commission
        assert result.pnl_pct == pytest.approx(1.9)

    def test_loss_pnl(self):
        result = simulate_trade(make_signal(), [make_kline(1, low="98.5")])
        assert result.outcome == Outcome.SL
        assert result.pnl_pct == pytest.approx(-1.1)

    def test_sell_win_pnl(self):
        signal = make_signal(SignalType.SELL, tp=98.0, sl=101.0)
        result = simulate_trade(signal, [make_kline(1, low="97.5")])
        assert result.pnl_pct == pytest.approx(1.9)

    def test_lookahead_cap(self):
        forward = flat_series(5) + [make_kline(5, high="105")]
        result = simulate_trade(make_signal(), forward, max_bars=5)
        assert result.outcome == Outcome.OPEN
        assert not result.is_trade


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

class TestCalculateMetrics:
    def test_aggregates(self):
        trades = [make_trade(Outcome.TP, 1.9), make_trade(Outcome.TP, 1.9), make_trade(Outcome.SL, -1.1)]
        metrics = calculate_metrics(trades)

        assert metrics.total_trades == 3
        assert metrics.win_rate == pytest.approx(2 / 3)
        assert metrics.avg_win == pytest.approx(1.9)
        assert metrics.avg_loss == pytest.approx(1.1)
        assert metrics.net_profit == pytest.approx(2.7)
        assert metrics.expectancy == pytest.approx(0.9)
        assert metrics.profit_factor == pytest.approx(3.8 / 1.1)
        assert metrics.max_drawdown == pytest.approx(1.1)
        assert metrics.final_equity == pytest.approx(10_000 * 1.019 * 1.019 * 0.989)

    def test_no_losses_caps_profit_factor(self):
        metrics = calculate_metrics([make_trade(Outcome.TP, 1.9)])
        assert metrics.profit_factor == PROFIT_FACTOR_CAP
        assert metrics.avg_loss == 0.0
        assert metrics.max_drawdown == 0.0

    def test_open_trades_ignored(self):
        metrics = calculate_metrics([make_trade(Outcome.OPEN, 0.0), make_trade(Outcome.SL, -1.1)])
        assert metrics.total_trades == 1
        assert metrics.win_rate == 0.0
        assert metrics.profit_factor == 0.0

    def test_empty(self):
        metrics = calculate_metrics([])
        assert metrics.total_trades == 0
        assert metrics.final_equity == 10_000


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class TestBacktestEngine:
    """Walk-forward windows and the simulated clock."""

    def test_window_and_step(self):
        strategy = FakeStrategy("daily")
        BacktestEngine(BacktestSettings()).walk_forward(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", flat_series(230))

        assert len(strategy.windows) == 3
        assert all(len(w) == 200 for w in strategy.windows)
        assert strategy.windows[1][0].open_time == OPEN_TIME + 10 * HOUR_MS

    def test_scalping_step(self):
        strategy = FakeStrategy("scalping")
        BacktestEngine(BacktestSettings()).walk_forward(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", flat_series(230))
        assert len(strategy.windows) == 6

    def test_forward_bars_strictly_after_window(self):
        """A spike inside the window's last bar must not resolve the trade."""
        klines = flat_series(230)
        klines[199] = make_kline(199, high="110")
        strategy = FakeStrategy(tp=105.0, sl=90.0)

        engine = BacktestEngine(BacktestSettings(step_sizes={"daily": 100}))
        result = engine.walk_forward(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", klines)

        assert result.windows == 1
        assert result.trades[0].outcome == Outcome.OPEN
        assert engine.run(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", klines) is None

    def test_resolves_on_next_bar(self):
        klines = flat_series(230)
        klines[200] = make_kline(200, high="106")
        strategy = FakeStrategy(tp=105.0, sl=90.0)

        engine = BacktestEngine(BacktestSettings(step_sizes={"daily": 100}))
        metrics = engine.run(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", klines)

        assert metrics is not None
        assert metrics.total_trades == 1
        assert metrics.win_rate == 1.0
        assert metrics.avg_win == pytest.approx(4.9)

    def test_lookahead_cap_from_settings(self):
        klines = flat_series(260)
        klines[255] = make_kline(255, high="106")
        strategy = FakeStrategy(tp=105.0, sl=90.0)

        engine = BacktestEngine(BacktestSettings(step_sizes={"daily": 100}, max_lookahead_bars=50))
        assert engine.run(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", klines) is None

    def test_short_series_returns_none(self):
        strategy = FakeStrategy()
        assert BacktestEngine().run(strategy, "BTCUSDT", AssetClass.CRYPTO, "1h", flat_series(150)) is None
        assert strategy.windows == []

    def test_deterministic_with_real_strategy(self):
        klines = generate_mock_klines("BTCUSDT", "4h", 400, 45000.0, now_ms=OPEN_TIME)
        engine = BacktestEngine()
        first = engine.run(DailyStrategy(), "BTCUSDT", AssetClass.CRYPTO, "4h", klines)
        second = engine.run(DailyStrategy(), "BTCUSDT", AssetClass.CRYPTO, "4h", klines)
        assert first == second


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class FakeSource:
    """KlineSource over an in-memory catalogue."""

    def __init__(self, klines=None, error_for: str | None = None):
        self.classes = {"BTCUSDT": AssetClass.CRYPTO, "EUR/USD": AssetClass.FOREX}
        self.klines = klines if klines is not None else []
        self.error_for = error_for
        self.calls: list[tuple[str, str, int]] = []

    def available_symbols(self) -> list[str]:
        return list(self.classes)

    def get_asset_class(self, symbol: str) -> AssetClass:
        return self.classes[symbol]

    async def get_klines(self, symbol, timeframe, limit=300):
        self.calls.append((symbol, timeframe, limit))
        if symbol == self.error_for:
            raise RuntimeError("provider exploded")
        return self.klines


@pytest.mark.asyncio
class TestBacktestRunner:
    async def test_backtest_all_scalps_crypto_only(self):
        source = FakeSource()
        runner = BacktestRunner(source, settings=BacktestSettings())
        results = await runner.backtest_all()

        assert results == {}
        fetched = {(s, tf) for s, tf, _ in source.calls}
        assert ("EUR/USD", "1d") in fetched
        assert ("BTCUSDT", "5m") in fetched
        assert not any(s == "EUR/USD" and tf in ("5m", "15m", "30m") for s, tf in fetched)

    async def test_history_limits(self):
        source = FakeSource()
        runner = BacktestRunner(source, settings=BacktestSettings())
        await runner.backtest_all()
        limits = {tf: limit for _, tf, limit in source.calls}
        assert limits["5m"] == 8640
        assert limits["1d"] == 365

    async def test_failure_isolated_per_key(self):
        klines = flat_series(230)
        klines[200] = make_kline(200, high="106")
        source = FakeSource(klines=klines, error_for="EUR/USD")
        runner = BacktestRunner(source, settings=BacktestSettings(step_sizes={"daily": 100}))

        results = await runner.backtest_strategy(FakeStrategy(tp=105.0, sl=90.0), ["EUR/USD", "BTCUSDT"], ["1h"])

        assert list(results) == ["daily_BTCUSDT_1h"]
        assert results["daily_BTCUSDT_1h"].win_rate == 1.0

    async def test_fresh_results_each_run(self):
        source = FakeSource()
        runner = BacktestRunner(source, settings=BacktestSettings())
        first = await runner.backtest_all()
        first["stale"] = None
        assert "stale" not in await runner.backtest_all()
