"""Strategy orchestrator: the entry point schedulers call.

Wires backtest metrics into the live strategies and generates signals for
asset × timeframe batches. Pairs are processed one at a time so each
provider's rate limiter sees a steady request stream; a failing pair is
logged and skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from signals_backtest.runner import BacktestRunner
from signals_core.models.market import AssetClass
from signals_core.models.signal import BacktestMetrics, Signal
from signals_core.strategy.base import BaseStrategy
from signals_core.strategy.daily import DailyStrategy
from signals_core.strategy.scalping import ScalpingStrategy

from marketfeed.config import Settings, get_settings
from marketfeed.router import MarketDataRouter

logger = logging.getLogger(__name__)


class StrategyOrchestrator:
    """Generate daily and scalping signals with backtest-informed confidence."""

    def __init__(
        self,
        router: MarketDataRouter,
        settings: Settings | None = None,
        backtest_runner: BacktestRunner | None = None,
    ):
        self.router = router
        self.settings = settings or get_settings()
        self._runner = backtest_runner or BacktestRunner(router)
        self._metrics: dict[str, BacktestMetrics] = {}
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self.daily_strategy = DailyStrategy()
        self.scalping_strategy = ScalpingStrategy()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def metrics(self) -> dict[str, BacktestMetrics]:
        return self._metrics

    # ------------------------------------------------------------------
    # Backtest wiring
    # ------------------------------------------------------------------

    async def initialize(self, run_backtest: bool = True) -> None:
        """Run the backtest once and rebuild both strategies.

        A failed backtest leaves the strategies without metrics; signal
        generation still works. With ``run_backtest=False`` the strategies
        are used as they are.
        """
        async with self._init_lock:
            if self._initialized:
                return
            try:
                if run_backtest:
                    await self.run_backtest()
            except Exception:
                logger.error("Initial backtest failed, continuing without metrics", exc_info=True)
            self._initialized = True

    async def run_backtest(self) -> dict[str, BacktestMetrics]:
        """Full backtest pass; replaces all previously cached metrics."""
        logger.info("Running backtest for all strategies")
        metrics = await self._runner.backtest_all()
        self._metrics = metrics
        self.daily_strategy = DailyStrategy(
            config=self.daily_strategy.config, backtest_metrics=metrics
        )
        self.scalping_strategy = ScalpingStrategy(
            config=self.scalping_strategy.config, backtest_metrics=metrics
        )
        logger.info(f"Strategies rebuilt with {len(metrics)} backtest results")
        return metrics

    def get_metrics_for_strategy(self, strategy_name: str) -> dict[str, BacktestMetrics]:
        prefix = f"{strategy_name}_"
        return {k: v for k, v in self._metrics.items() if k.startswith(prefix)}

    # ------------------------------------------------------------------
    # Signal generation
    # ------------------------------------------------------------------

    async def generate_daily_signals(
        self,
        assets: Sequence[str] | None = None,
        timeframes: Sequence[str] | None = None,
    ) -> list[Signal]:
        """Daily signals for every asset × timeframe pair."""
        if not self._initialized:
            await self.initialize()
        return await self._generate(
            self.daily_strategy,
            assets if assets is not None else self.router.available_symbols(),
            timeframes if timeframes is not None else self.settings.orchestrator.daily_timeframes,
            min_bars=self.settings.orchestrator.daily_min_bars,
        )

    async def generate_scalping_signals(
        self,
        assets: Sequence[str] | None = None,
        timeframes: Sequence[str] | None = None,
    ) -> list[Signal]:
        """Scalping signals; forex pairs are skipped."""
        if not self._initialized:
            await self.initialize()
        return await self._generate(
            self.scalping_strategy,
            assets if assets is not None else self.router.available_symbols(),
            timeframes if timeframes is not None else self.settings.orchestrator.scalping_timeframes,
            min_bars=self.settings.orchestrator.scalping_min_bars,
            skip_classes=(AssetClass.FOREX,),
        )

    async def _generate(
        self,
        strategy: BaseStrategy,
        assets: Sequence[str],
        timeframes: Sequence[str],
        min_bars: int,
        skip_classes: tuple[AssetClass, ...] = (),
    ) -> list[Signal]:
        signals: list[Signal] = []
        limit = self.settings.orchestrator.fetch_limit

        for asset in assets:
            try:
                asset_class = self.router.get_asset_class(asset)
            except KeyError:
                logger.warning(f"[{strategy.name}] Unknown asset {asset}, skipping")
                continue
            if asset_class in skip_classes:
                logger.debug(f"[{strategy.name}] Skipping {asset} ({asset_class.value})")
                continue

            for timeframe in timeframes:
                try:
                    klines = await self.router.get_klines(asset, timeframe, limit)
                    if len(klines) < min_bars:
                        logger.warning(
                            f"[{strategy.name}] Insufficient data for {asset} {timeframe}: "
                            f"{len(klines)} < {min_bars} bars"
                        )
                        continue
                    pair_signals = strategy.generate_signals(asset, asset_class, timeframe, klines)
                except Exception:
                    logger.error(
                        f"[{strategy.name}] Signal generation failed for {asset} {timeframe}",
                        exc_info=True,
                    )
                    continue

                if pair_signals:
                    logger.info(
                        f"[{strategy.name}] {asset} {timeframe}: {len(pair_signals)} signal(s)"
                    )
                signals.extend(pair_signals)

        logger.info(f"[{strategy.name}] Generated {len(signals)} signals")
        return signals
