"""Command-line entry point.

Usage:
    python -m marketfeed daily --assets BTCUSDT,EUR/USD --timeframes 4h,1d
    python -m marketfeed scalping --timeframes 5m,15m
    python -m marketfeed backtest -o metrics.json
    python -m marketfeed watch BTCUSDT 5m
"""

import argparse
import asyncio
import logging
import sys

import orjson

from signals_core.models.kline import Kline
from signals_core.strategy.registry import create_strategy, list_strategies

from marketfeed.config import get_settings
from marketfeed.router import MarketDataRouter
from marketfeed.services.orchestrator import StrategyOrchestrator

logger = logging.getLogger("marketfeed")


def configure_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("picows").setLevel(logging.WARNING)


def split_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Market data signals and backtesting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--no-mock",
        action="store_true",
        help="Fail instead of falling back to synthetic data",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("daily", "scalping"):
        cmd = sub.add_parser(name, help=f"Generate {name} signals")
        cmd.add_argument("--assets", type=str, default=None, help="Comma-separated symbols")
        cmd.add_argument("--timeframes", type=str, default=None, help="Comma-separated timeframes")
        cmd.add_argument(
            "--skip-backtest",
            action="store_true",
            help="Do not run the backtest; confidence omits win rate",
        )

    backtest = sub.add_parser("backtest", help="Backtest all strategies")
    backtest.add_argument("--output", "-o", type=str, default=None, help="Write metrics JSON here")

    watch = sub.add_parser("watch", help="Stream live klines and evaluate on every close")
    watch.add_argument("symbol", type=str)
    watch.add_argument("timeframe", type=str)
    watch.add_argument(
        "--strategy",
        type=str,
        default="scalping",
        choices=list_strategies(),
    )
    return parser.parse_args(argv)


def dump(data) -> str:
    return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode()


async def cmd_signals(args: argparse.Namespace, orchestrator: StrategyOrchestrator) -> None:
    await orchestrator.initialize(run_backtest=not args.skip_backtest)
    assets = split_list(args.assets)
    timeframes = split_list(args.timeframes)
    if args.command == "daily":
        signals = await orchestrator.generate_daily_signals(assets, timeframes)
    else:
        signals = await orchestrator.generate_scalping_signals(assets, timeframes)
    print(dump([s.model_dump(mode="json") for s in signals]))


async def cmd_backtest(args: argparse.Namespace, orchestrator: StrategyOrchestrator) -> None:
    metrics = await orchestrator.run_backtest()
    payload = {key: m.model_dump() for key, m in sorted(metrics.items())}
    if args.output:
        with open(args.output, "wb") as f:
            f.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        print(f"Wrote {len(payload)} results to {args.output}")
    else:
        print(dump(payload))


async def cmd_watch(args: argparse.Namespace, router: MarketDataRouter) -> None:
    """Keep a rolling buffer and run the strategy on each closed kline."""
    strategy = create_strategy(args.strategy)
    asset_class = router.get_asset_class(args.symbol)
    limit = get_settings().orchestrator.fetch_limit

    buffer: list[Kline] = await router.get_klines(args.symbol, args.timeframe, limit)
    subscription = await router.subscribe_live(args.symbol, args.timeframe)
    logger.info(f"Watching {args.symbol} {args.timeframe} with {len(buffer)} bars of history")

    async for update in subscription:
        if not update.is_final:
            continue
        if buffer and buffer[-1].open_time == update.kline.open_time:
            buffer[-1] = update.kline
        else:
            buffer.append(update.kline)
        buffer = buffer[-limit:]
        for signal in strategy.generate_signals(
            args.symbol, asset_class, args.timeframe, buffer
        ):
            print(dump(signal.model_dump(mode="json")))


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, args.verbose)

    router = MarketDataRouter(
        settings,
        mock_fallback=False if args.no_mock else None,
    )
    orchestrator = StrategyOrchestrator(router, settings)

    try:
        if args.command in ("daily", "scalping"):
            await cmd_signals(args, orchestrator)
        elif args.command == "backtest":
            await cmd_backtest(args, orchestrator)
        elif args.command == "watch":
            await cmd_watch(args, router)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        await router.close()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
