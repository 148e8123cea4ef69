"""Tests for indicator math and snapshot composition."""

from decimal import Decimal

import numpy as np
import pytest

from signals_core.indicators import (
    atr,
    bollinger_bands,
    calculate_bollinger_bands,
    calculate_moving_averages,
    calculate_rsi,
    calculate_stochastic,
    calculate_volume,
    compute_indicators,
    compute_multi_timeframe_indicators,
    ema,
    macd,
    normalize_klines,
    rsi,
    sma,
    stochastic,
    true_range,
)
from signals_core.models.indicators import IndicatorConfig, MovingAverageConfig, StochasticConfig
from signals_core.models.kline import Kline

HOUR_MS = 3_600_000
OPEN_TIME = 1_735_689_600_000

# Classic 20-close RSI worked example
RSI_CLOSES = [
    44.00, 44.34, 44.09, 43.61, 44.33, 44.83, 45.10, 45.42, 45.84, 46.08,
    45.89, 46.03, 45.61, 46.28, 46.28, 46.00, 46.03, 46.41, 46.22, 45.64,
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_kline(i: int, close: float, volume: float = 100.0, spread: float = 0.005) -> Kline:
    t = OPEN_TIME + i * HOUR_MS
    c = Decimal(str(round(close, 8)))
    return Kline(
        symbol="BTCUSDT",
        timeframe="1h",
        open_time=t,
        open=c,
        high=Decimal(str(round(close * (1 + spread), 8))),
        low=Decimal(str(round(close * (1 - spread), 8))),
        close=c,
        volume=Decimal(str(volume)),
        close_time=t + HOUR_MS - 1,
    )


def make_series(closes: list[float], volume: float = 100.0) -> list[Kline]:
    return [make_kline(i, c, volume) for i, c in enumerate(closes)]


def trending_closes(n: int, start: float = 100.0, rate: float = 0.01) -> list[float]:
    return [start * (1 + rate) ** i for i in range(n)]


# ---------------------------------------------------------------------------
# Series math
# ---------------------------------------------------------------------------

class TestMovingAverages:
    def test_sma(self):
        result = sma([1, 2, 3, 4, 5], 3)
        assert np.isnan(result[:2]).all()
        np.testing.assert_allclose(result[2:], [2, 3, 4])

    def test_ema_seeded_with_sma(self):
        result = ema([1, 2, 3, 4, 5], 3)
        assert np.isnan(result[:2]).all()
        np.testing.assert_allclose(result[2:], [2, 3, 4])

    def test_short_input_all_nan(self):
        assert np.isnan(sma([1, 2], 5)).all()
        assert np.isnan(ema([1, 2], 5)).all()


class TestRsi:
    def test_worked_example(self):
        values = rsi(RSI_CLOSES, 14)
        assert np.isnan(values[:14]).all()
        assert values[-1] == pytest.approx(60.14, abs=0.1)
        assert 50 < values[-1] < 80

    def test_needs_period_plus_one(self):
        assert np.isnan(rsi(RSI_CLOSES[:14], 14)).all()
        assert not np.isnan(rsi(RSI_CLOSES[:15], 14)[-1])

    def test_no_losses_reads_100(self):
        assert rsi(trending_closes(30), 14)[-1] == 100.0

    def test_flat_reads_50(self):
        assert rsi([10.0] * 30, 14)[-1] == 50.0

    def test_bounds(self):
        rng = np.random.default_rng(7)
        closes = 100 + np.cumsum(rng.normal(0, 1, 300))
        values = rsi(closes, 14)
        defined = values[~np.isnan(values)]
        assert ((defined >= 0) & (defined <= 100)).all()


class TestMacd:
    def test_histogram_identity(self):
        rng = np.random.default_rng(1)
        closes = 100 + np.cumsum(rng.normal(0, 1, 120))
        line, signal, hist = macd(closes)

        defined = ~np.isnan(hist)
        np.testing.assert_allclose(hist[defined], (line - signal)[defined])
        # First full triple at slow + signal - 2
        assert np.isnan(hist[26 + 9 - 3])
        assert not np.isnan(hist[26 + 9 - 2])

    def test_uptrend_is_positive(self):
        line, signal, hist = macd(trending_closes(100))
        assert line[-1] > 0
        assert hist[-1] > 0


class TestVolatility:
    def test_bollinger_flat_series_collapses(self):
        upper, middle, lower = bollinger_bands([5.0] * 25, 20, 2.0)
        assert upper[-1] == middle[-1] == lower[-1] == 5.0

    def test_bollinger_population_std(self):
        closes = [1.0, 2.0, 3.0, 4.0]
        upper, middle, lower = bollinger_bands(closes, 4, 1.0)
        assert middle[-1] == 2.5
        assert upper[-1] == pytest.approx(2.5 + np.std(closes))

    def test_true_range_uses_previous_close(self):
        tr = true_range([10, 12], [9, 11], [9.5, 11.5])
        assert np.isnan(tr[0])
        # max(1, |12 - 9.5|, |11 - 9.5|)
        assert tr[1] == 2.5

    def test_atr_constant_range(self):
        n = 30
        values = atr([11.0] * n, [9.0] * n, [10.0] * n, 14)
        assert values[-1] == pytest.approx(2.0)
        assert np.isnan(values[13])
        assert values[14] == pytest.approx(2.0)


class TestStochastic:
    def test_close_at_high_reads_100(self):
        highs = list(range(1, 21))
        lows = [h - 1 for h in highs]
        k, d = stochastic(highs, lows, highs, 14, 3)
        assert k[-1] == 100.0
        assert d[-1] == 100.0

    def test_flat_range_reads_50(self):
        k, _ = stochastic([1.0] * 20, [1.0] * 20, [1.0] * 20)
        assert k[-1] == 50.0


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

class TestSnapshotCalculators:
    def test_insufficient_data_returns_none(self):
        candles = normalize_klines(make_series([100.0] * 10))
        assert calculate_rsi(candles, 14) is None
        assert calculate_bollinger_bands(candles, 20) is None
        assert calculate_volume(candles, 20) is None
        assert calculate_stochastic(candles, 14, 3) is None

    def test_flat_bands_percent_b(self):
        candles = normalize_klines(make_series([100.0] * 30))
        bb = calculate_bollinger_bands(candles, 20)
        assert bb.percent_b == 0.5
        assert bb.bandwidth == 0.0

    def test_volume_ratio(self):
        klines = make_series([100.0] * 20)
        klines[-1] = make_kline(19, 100.0, volume=200.0)
        snapshot = calculate_volume(normalize_klines(klines), 20)
        assert snapshot.current == 200.0
        assert snapshot.average == pytest.approx(105.0)
        assert snapshot.ratio == pytest.approx(200 / 105)

    def test_moving_averages_omit_long_periods(self):
        candles = normalize_klines(make_series(trending_closes(60)))
        result = calculate_moving_averages(candles, [10, 50, 100], "ema")
        assert set(result) == {10, 50}

    def test_rsi_flags(self):
        candles = normalize_klines(make_series(trending_closes(30)))
        snapshot = calculate_rsi(candles, 14)
        assert snapshot.overbought is True
        assert snapshot.oversold is False


class TestComputeIndicators:
    """Full snapshot composition."""

    def test_bullish_series(self):
        klines = make_series(trending_closes(250))
        snapshot = compute_indicators(klines, "BTCUSDT", "1h")

        assert snapshot is not None
        assert snapshot.rsi.value > 50
        assert snapshot.macd.bullish == (snapshot.macd.histogram > 0)
        assert snapshot.macd.bullish is True
        assert set(snapshot.sma) == {10, 20, 50, 100, 200}
        assert snapshot.ema[50] > snapshot.ema[200]
        assert snapshot.price == pytest.approx(float(klines[-1].close))
        assert snapshot.timestamp == klines[-1].open_time
        assert snapshot.stochastic is None

    def test_insufficient_series_returns_none(self):
        klines = make_series(trending_closes(199))
        assert compute_indicators(klines, "BTCUSDT", "1h") is None

    def test_required_length_follows_config(self):
        config = IndicatorConfig(
            sma=MovingAverageConfig(periods=[10]),
            ema=MovingAverageConfig(periods=[9, 21]),
            stochastic=StochasticConfig(),
        )
        assert config.required_length() == 35
        klines = make_series(trending_closes(40))
        snapshot = compute_indicators(klines, "BTCUSDT", "1h", config)
        assert snapshot is not None
        assert snapshot.stochastic is not None

    def test_invalid_bars_are_dropped(self):
        klines = make_series(trending_closes(210))
        bad = klines[5].model_copy(update={"low": klines[5].high * 2})
        klines[5] = bad
        snapshot = compute_indicators(klines, "BTCUSDT", "1h")
        assert snapshot is not None

    def test_unsorted_input_is_ordered(self):
        klines = make_series(trending_closes(220))
        forward = compute_indicators(klines, "BTCUSDT", "1h")
        shuffled = compute_indicators(list(reversed(klines)), "BTCUSDT", "1h")
        assert forward == shuffled

    def test_multi_timeframe_skips_short(self):
        result = compute_multi_timeframe_indicators(
            {"1h": make_series(trending_closes(220)), "4h": make_series(trending_closes(50))},
            "BTCUSDT",
        )
        assert list(result) == ["BTCUSDT_1h"]
