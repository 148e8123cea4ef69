"""BacktestRunner: backtest every strategy/asset/timeframe combination.

Only needs a ``KlineSource``; marketfeed's MarketDataRouter is one.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol, Sequence, runtime_checkable

from signals_core.models.kline import Kline
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, metrics_key
from signals_core.strategy.protocol import Strategy
from signals_core.strategy.registry import create_strategy

from signals_backtest.config import BacktestSettings, get_backtest_settings
from signals_backtest.engine import BacktestEngine

logger = logging.getLogger(__name__)


@runtime_checkable
class KlineSource(Protocol):
    """Historical klines plus the asset catalogue."""

    def available_symbols(self) -> list[str]: ...

    def get_asset_class(self, symbol: str) -> AssetClass: ...

    async def get_klines(
        self, symbol: str, timeframe: str, limit: int | None = 300
    ) -> list[Kline]: ...


class BacktestRunner:
    """Run backtests sequentially, isolating failures per key."""

    def __init__(
        self,
        source: KlineSource,
        settings: BacktestSettings | None = None,
        engine: BacktestEngine | None = None,
    ):
        self._source = source
        self.settings = settings or get_backtest_settings()
        self.engine = engine or BacktestEngine(self.settings)

    def history_limit(self, timeframe: str) -> int:
        return self.settings.history_limits.get(timeframe, self.settings.window_size * 2)

    async def backtest(
        self,
        strategy: Strategy,
        asset: str,
        timeframe: str,
    ) -> BacktestMetrics | None:
        """Fetch history for one pair and backtest it."""
        asset_class = self._source.get_asset_class(asset)
        klines = await self._source.get_klines(asset, timeframe, self.history_limit(timeframe))
        return self.engine.run(strategy, asset, asset_class, timeframe, klines)

    async def backtest_strategy(
        self,
        strategy: Strategy,
        assets: Sequence[str],
        timeframes: Sequence[str],
    ) -> dict[str, BacktestMetrics]:
        results: dict[str, BacktestMetrics] = {}
        for asset in assets:
            for timeframe in timeframes:
                key = metrics_key(strategy.name, asset, timeframe)
                try:
                    metrics = await self.backtest(strategy, asset, timeframe)
                except Exception:
                    logger.error(f"Backtest failed: {key}", exc_info=True)
                    continue
                if metrics is not None:
                    results[key] = metrics
        return results

    async def backtest_all(self) -> dict[str, BacktestMetrics]:
        """
        Backtest the daily strategy on every asset and the scalping strategy
        on crypto.

        Returns:
            A fresh metrics map keyed ``{strategy}_{asset}_{timeframe}``;
            keys without resolved trades are absent.
        """
        start = time.time()
        assets = self._source.available_symbols()
        crypto = [a for a in assets if self._source.get_asset_class(a) == AssetClass.CRYPTO]

        results: dict[str, BacktestMetrics] = {}
        results.update(await self.backtest_strategy(
            create_strategy("daily"), assets, self.settings.daily_timeframes
        ))
        results.update(await self.backtest_strategy(
            create_strategy("scalping"), crypto, self.settings.scalping_timeframes
        ))

        logger.info(
            f"Backtest completed in {time.time() - start:.1f}s: "
            f"{len(results)} keys with metrics"
        )
        return results
