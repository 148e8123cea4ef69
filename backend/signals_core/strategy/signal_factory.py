"""Shared signal construction: TP/SL levels, confidence scoring, metadata.

Plain functions with explicit inputs; both strategies and the backtester
call them, and none of them keeps state between calls.
"""

from __future__ import annotations

from typing import Any

import orjson
from pydantic import BaseModel

from signals_core.models.market import AssetClass, pip_size
from signals_core.models.signal import BacktestMetrics, Signal, SignalType

RISK_DISCLAIMER = (
    "Trading carries significant risk. Past performance does not guarantee "
    "future results. Only trade with capital you can afford to lose."
)

# Default TP/SL as fractions of entry price
FOREX_TAKE_PROFIT = 0.01
FOREX_STOP_LOSS = 0.005
CRYPTO_TAKE_PROFIT = 0.015
CRYPTO_STOP_LOSS = 0.0075

# Multi-target ladder: (fraction of full TP distance, position allocation)
TARGET_LADDER = ((0.33, 0.40), (0.67, 0.35), (1.0, 0.25))
FOREX_LADDER_TAKE_PROFIT = 0.01
CRYPTO_LADDER_TAKE_PROFIT = 0.02

# Confidence weights
CONFLUENCE_WEIGHT = 40
WIN_RATE_WEIGHT = 35
VOLUME_WEIGHT = 15
TREND_WEIGHT = 10
# Win rate assumed for keys without backtest metrics
DEFAULT_WIN_RATE = 0.5


class TpSlConfig(BaseModel):
    """Take-profit/stop-loss distances for one rule.

    Percentages are fractions of the entry price (0.01 == 1 %). When both
    pip distances are set they take precedence over percentages.
    """

    take_profit_pct: float | None = None
    stop_loss_pct: float | None = None
    take_profit_pips: float | None = None
    stop_loss_pips: float | None = None


class TakeProfitTarget(BaseModel):
    price: float
    allocation: float


# =============================================================================
# Price levels
# =============================================================================

def _default_percentages(asset_class: AssetClass) -> tuple[float, float]:
    if asset_class == AssetClass.CRYPTO:
        return CRYPTO_TAKE_PROFIT, CRYPTO_STOP_LOSS
    return FOREX_TAKE_PROFIT, FOREX_STOP_LOSS


def calculate_tpsl_pips(
    entry_price: float,
    signal_type: SignalType,
    take_profit_pips: float,
    stop_loss_pips: float,
    pip: float = 0.0001,
) -> tuple[float, float]:
    """Return (take_profit, stop_loss) from pip distances."""
    tp_distance = take_profit_pips * pip
    sl_distance = stop_loss_pips * pip
    if signal_type == SignalType.BUY:
        return entry_price + tp_distance, entry_price - sl_distance
    return entry_price - tp_distance, entry_price + sl_distance


def calculate_tpsl(
    entry_price: float,
    signal_type: SignalType,
    asset_class: AssetClass,
    config: TpSlConfig | None = None,
    pip: float = 0.0001,
) -> tuple[float, float]:
    """Return (take_profit, stop_loss) for an entry.

    Pip distances win when both are configured; otherwise percentages are
    used, falling back to the asset-class defaults (forex 1 %/0.5 %,
    crypto 1.5 %/0.75 %).
    """
    config = config or TpSlConfig()
    if config.take_profit_pips and config.stop_loss_pips:
        return calculate_tpsl_pips(
            entry_price,
            signal_type,
            config.take_profit_pips,
            config.stop_loss_pips,
            pip,
        )

    default_tp, default_sl = _default_percentages(asset_class)
    tp_pct = config.take_profit_pct or default_tp
    sl_pct = config.stop_loss_pct or default_sl

    if signal_type == SignalType.BUY:
        return entry_price * (1 + tp_pct), entry_price * (1 - sl_pct)
    return entry_price * (1 - tp_pct), entry_price * (1 + sl_pct)


def calculate_multiple_targets(
    entry_price: float,
    signal_type: SignalType,
    asset_class: AssetClass,
    config: TpSlConfig | None = None,
) -> list[TakeProfitTarget]:
    """Scale-out ladder at 33/67/100 % of the TP distance."""
    config = config or TpSlConfig()
    default_tp = (
        CRYPTO_LADDER_TAKE_PROFIT
        if asset_class == AssetClass.CRYPTO
        else FOREX_LADDER_TAKE_PROFIT
    )
    tp_pct = config.take_profit_pct or default_tp
    sign = 1 if signal_type == SignalType.BUY else -1

    return [
        TakeProfitTarget(
            price=entry_price * (1 + sign * tp_pct * fraction),
            allocation=allocation,
        )
        for fraction, allocation in TARGET_LADDER
    ]


# =============================================================================
# Confidence
# =============================================================================

def _rsi_agrees(rsi: float, signal_type: SignalType) -> bool:
    # Extreme on the reversal side, or momentum not yet stretched
    if signal_type == SignalType.BUY:
        return rsi < 30 or 50 < rsi < 70
    return rsi > 70 or 30 < rsi < 50


def calculate_indicator_confluence(
    indicators: dict[str, Any],
    signal_type: SignalType,
) -> float:
    """Fraction of available secondary indicators agreeing with the trade.

    Looks at ``rsi`` (float), ``macd`` (dict with bullish/bearish) and the
    boolean rule flags ``ema_signal``, ``bb_signal`` and ``stoch_signal``.
    Returns 0.5 when none of them are present.
    """
    confirming = 0
    total = 0

    rsi = indicators.get("rsi")
    if rsi is not None:
        total += 1
        if _rsi_agrees(rsi, signal_type):
            confirming += 1

    macd = indicators.get("macd")
    if macd is not None:
        total += 1
        key = "bullish" if signal_type == SignalType.BUY else "bearish"
        if macd.get(key):
            confirming += 1

    for flag in ("ema_signal", "bb_signal", "stoch_signal"):
        value = indicators.get(flag)
        if value is not None:
            total += 1
            if value:
                confirming += 1

    return confirming / total if total > 0 else 0.5


def calculate_confidence(
    indicator_confluence: float,
    backtest_win_rate: float | None = None,
    volume_ratio: float | None = None,
    trend_alignment: float | None = None,
) -> int:
    """Weighted 0-100 confidence score.

    ``backtest_win_rate`` is a fraction in [0, 1]; without a backtest it
    counts as ``DEFAULT_WIN_RATE``. Volume and trend contribute only when
    given, and the score is normalized by the weights that took part.
    """
    if backtest_win_rate is None:
        backtest_win_rate = DEFAULT_WIN_RATE

    score = indicator_confluence * CONFLUENCE_WEIGHT + backtest_win_rate * WIN_RATE_WEIGHT
    weights = CONFLUENCE_WEIGHT + WIN_RATE_WEIGHT

    if volume_ratio is not None:
        score += min(volume_ratio / 2, 1.0) * VOLUME_WEIGHT
        weights += VOLUME_WEIGHT

    if trend_alignment is not None:
        score += trend_alignment * TREND_WEIGHT
        weights += TREND_WEIGHT

    normalized = score / weights
    return round(max(0.0, min(100.0, normalized * 100)))


def confidence_to_stars(confidence: float) -> int:
    """Map a 0-100 confidence onto a 1-5 star rating."""
    if confidence >= 80:
        return 5
    if confidence >= 65:
        return 4
    if confidence >= 50:
        return 3
    if confidence >= 35:
        return 2
    return 1


# =============================================================================
# Signal construction
# =============================================================================

def create_signal(
    *,
    strategy: str,
    asset: str,
    timeframe: str,
    asset_class: AssetClass,
    signal_type: SignalType,
    entry_price: float,
    signal_time: int,
    indicators: dict[str, Any],
    tpsl: TpSlConfig | None = None,
    backtest_metrics: BacktestMetrics | None = None,
    trend_alignment: float | None = None,
    confidence: int | None = None,
    extra_metadata: dict[str, Any] | None = None,
) -> Signal:
    """Build an ACTIVE signal with TP/SL, confidence and JSON metadata."""
    take_profit, stop_loss = calculate_tpsl(
        entry_price, signal_type, asset_class, tpsl, pip_size(asset)
    )

    if confidence is None:
        confidence = calculate_confidence(
            calculate_indicator_confluence(indicators, signal_type),
            backtest_win_rate=backtest_metrics.win_rate if backtest_metrics else None,
            volume_ratio=indicators.get("volume_ratio"),
            trend_alignment=trend_alignment,
        )

    metadata: dict[str, Any] = {
        "strategy": strategy,
        "asset_class": asset_class.value,
        "indicators": indicators,
        "confidence": confidence,
        "stars": confidence_to_stars(confidence),
        "backtest_win_rate": backtest_metrics.win_rate if backtest_metrics else None,
        "backtest_trades": backtest_metrics.total_trades if backtest_metrics else None,
        "expectancy": backtest_metrics.expectancy if backtest_metrics else None,
        "risk_disclaimer": RISK_DISCLAIMER,
    }
    if extra_metadata:
        metadata.update(extra_metadata)

    return Signal(
        strategy=strategy,
        asset=asset,
        timeframe=timeframe,
        signal_type=signal_type,
        entry_price=entry_price,
        take_profit=take_profit,
        stop_loss=stop_loss,
        signal_time=signal_time,
        metadata=orjson.dumps(metadata).decode(),
    )


def create_multi_target_signal(**kwargs: Any) -> Signal:
    """Like create_signal, with a three-step TP ladder.

    The signal's take_profit is the final ladder target; the ladder is
    stored under ``multiple_targets`` in the metadata.
    """
    base = create_signal(**kwargs)
    targets = calculate_multiple_targets(
        kwargs["entry_price"],
        kwargs["signal_type"],
        kwargs["asset_class"],
        kwargs.get("tpsl"),
    )

    metadata = base.metadata_dict()
    metadata["multiple_targets"] = {
        f"tp{i}": target.model_dump() for i, target in enumerate(targets, start=1)
    }
    return base.model_copy(
        update={
            "take_profit": targets[-1].price,
            "metadata": orjson.dumps(metadata).decode(),
        }
    )
