"""gauntlet.cli

Command line interface entry point for gauntlet.

Design constraints:
- argparse-based.
- Lazy imports: do not import numpy/httpx at parse time.
- Handlers return exit codes; they do not raise for expected failures.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

EPILOG = "Candles in, signals out, numbers judged."


@dataclass(frozen=True)
class CliContext:
    repo_root: Path
    config: Any


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def _csv_list(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gauntlet",
        description="Backtest a trading strategy over historical candles and gate the result.",
        epilog=EPILOG,
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )

    sub = parser.add_subparsers(dest="command")

    p_bt = sub.add_parser("backtest", help="Backtest one strategy on one symbol and interval")
    # Positionals are optional at parse time so a missing one exits 1 with usage, not argparse's 2.
    p_bt.add_argument("strategy", nargs="?", help="Strategy file path or module:attr")
    p_bt.add_argument("symbol", nargs="?", help="Market symbol, e.g. BTC-USD")
    p_bt.add_argument("interval", nargs="?", help="Candle interval in minutes")
    p_bt.add_argument("--count", type=int, default=None, help="Candles to request (default from config).")
    p_bt.add_argument("--csv-dir", default=None, help="Read candles from {dir}/{symbol}_{interval}.csv instead of HTTP.")
    p_bt.add_argument("--no-register", action="store_true", help="Do not write passing runs to the registry.")
    p_bt.add_argument("--protective-exits", action="store_true", help="Exit on the strategy's ATR stop-loss / take-profit levels.")

    p_scan = sub.add_parser("scan", help="Backtest one strategy across symbols and intervals")
    p_scan.add_argument("strategy", help="Strategy file path or module:attr")
    p_scan.add_argument("--symbols", required=True, help="Comma separated symbols.")
    p_scan.add_argument("--intervals", default=None, help="Comma separated minutes (default from config).")
    p_scan.add_argument("--count", type=int, default=None)
    p_scan.add_argument("--csv-dir", default=None)
    p_scan.add_argument("--no-register", action="store_true")
    p_scan.add_argument("--protective-exits", action="store_true")

    p_fetch = sub.add_parser("fetch", help="Download candles to a CSV snapshot")
    p_fetch.add_argument("symbol")
    p_fetch.add_argument("interval", type=int)
    p_fetch.add_argument("--count", type=int, default=None)
    p_fetch.add_argument("--out", default=None, help="Output directory (default: <data_dir>/candles).")

    return parser


def _print_version() -> None:
    from gauntlet import __version__

    print(f"gauntlet v{__version__}")


def _make_source(ctx: CliContext, csv_dir: str | None) -> Any:
    from gauntlet.backtest.source import CsvCandleSource, HttpCandleSource

    if csv_dir:
        return CsvCandleSource(csv_dir)
    return HttpCandleSource.from_settings(ctx.config.data)


async def _close_source(source: Any) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()


def _registry_key(ref: str) -> str:
    # Registry entries are keyed by strategy file name, not by where it was run from.
    return Path(ref).name if ref.endswith(".py") else ref


def _register(ctx: CliContext, *, ref: str, symbol: str, interval: int, metrics: Any) -> None:
    from gauntlet.backtest.registry import WinnersRegistry, registration_notes
    from gauntlet.core.exceptions import RegistryError

    registry = WinnersRegistry(ctx.repo_root / ctx.config.registry_path)
    try:
        outcome = registry.register(
            file=_registry_key(ref),
            symbol=symbol,
            interval=interval,
            notes=registration_notes(metrics, interval),
        )
    except RegistryError as e:
        print(f"registry update failed: {e}", file=sys.stderr)
        return
    print(f"Registry: {outcome} ({registry.path})")


def _load(ctx: CliContext, ref: str) -> Any:
    from gauntlet.backtest.loader import load_strategy

    return load_strategy(ref, strategies_dir=ctx.repo_root / ctx.config.strategies_dir)


def _backtest_cfg(ctx: CliContext, args: argparse.Namespace) -> Any:
    from gauntlet.backtest.engine import BacktestConfig

    bt = ctx.config.backtest
    return BacktestConfig(
        warmup=bt.warmup,
        initial_equity=bt.initial_equity,
        protective_exits=bt.protective_exits or args.protective_exits,
        atr_period=bt.atr_period,
        fee_bps=bt.fee_bps,
        slippage_bps=bt.slippage_bps,
    )


def _candle_count(ctx: CliContext, requested: int | None) -> int | None:
    """--count when given, else the configured default. None means the request is unusable."""

    if requested is None:
        return ctx.config.backtest.candle_count
    if requested <= 0:
        print(f"error: --count must be positive: {requested}", file=sys.stderr)
        return None
    return requested


def _gate_cfg(ctx: CliContext) -> Any:
    from gauntlet.backtest.validation import GateConfig

    g = ctx.config.gate
    return GateConfig(
        min_trades=g.min_trades,
        min_win_rate=g.min_win_rate,
        min_total_pnl_percent=g.min_total_pnl_percent,
        min_sharpe=g.min_sharpe,
    )


async def _fetch(source: Any, *, symbol: str, interval: int, count: int, min_candles: int) -> Any:
    from gauntlet.core.exceptions import InsufficientDataError

    try:
        candles = await source.fetch_historical_data(symbol, interval, count)
    finally:
        await _close_source(source)
    if len(candles) < min_candles:
        raise InsufficientDataError(f"insufficient data: {len(candles)} candles (need >= {min_candles})")
    return candles


def _cmd_backtest(ctx: CliContext, args: argparse.Namespace) -> int:
    if not (args.strategy and args.symbol and args.interval):
        print(
            "usage: gauntlet backtest STRATEGY SYMBOL INTERVAL [--count N] [--csv-dir DIR] [--no-register] [--protective-exits]",
            file=sys.stderr,
        )
        print("example: gauntlet backtest strategies/rsi_reversion.py BTC-USD 15", file=sys.stderr)
        return 1

    try:
        interval = int(args.interval)
    except ValueError:
        print(f"error: interval must be an integer number of minutes: {args.interval!r}", file=sys.stderr)
        return 1
    if interval <= 0:
        print(f"error: interval must be positive: {interval}", file=sys.stderr)
        return 1

    from gauntlet.backtest.engine import run_backtest
    from gauntlet.backtest.report import render_gate, render_result
    from gauntlet.backtest.validation import evaluate_gate
    from gauntlet.core.exceptions import ConfigError, DataSourceError, StrategyError

    try:
        strategy = _load(ctx, args.strategy)
    except StrategyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    count = _candle_count(ctx, args.count)
    if count is None:
        return 1

    bt = ctx.config.backtest
    print(f"Backtesting {strategy.id} on {args.symbol} @ {interval}m ({count} candles)")

    try:
        candles = asyncio.run(
            _fetch(
                _make_source(ctx, args.csv_dir),
                symbol=args.symbol,
                interval=interval,
                count=count,
                min_candles=bt.min_candles,
            )
        )
    except (DataSourceError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        result = run_backtest(strategy=strategy, candles=candles, symbol=args.symbol, interval=interval, cfg=_backtest_cfg(ctx, args))
    except StrategyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    gate = _gate_cfg(ctx)
    gate_result = evaluate_gate(result.metrics, gate)

    print()
    print(render_result(result))
    print()
    print(render_gate(gate_result, gate))

    if gate_result.passed and not args.no_register:
        _register(ctx, ref=args.strategy, symbol=args.symbol, interval=interval, metrics=result.metrics)
    return 0


def _cmd_scan(ctx: CliContext, args: argparse.Namespace) -> int:
    from gauntlet.backtest.report import render_scan
    from gauntlet.backtest.scan import scan_symbols
    from gauntlet.core.exceptions import ConfigError, StrategyError

    symbols = _csv_list(args.symbols)
    try:
        intervals = [int(i) for i in _csv_list(args.intervals)] if args.intervals else list(ctx.config.scan.intervals)
    except ValueError:
        print(f"error: intervals must be integers: {args.intervals!r}", file=sys.stderr)
        return 1
    if not symbols or not intervals:
        print("error: need at least one symbol and one interval", file=sys.stderr)
        return 1

    try:
        strategy = _load(ctx, args.strategy)
    except StrategyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    count = _candle_count(ctx, args.count)
    if count is None:
        return 1

    bt = ctx.config.backtest
    gate = _gate_cfg(ctx)
    try:
        source = _make_source(ctx, args.csv_dir)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    async def run() -> Any:
        try:
            return await scan_symbols(
                strategy=strategy,
                source=source,
                symbols=symbols,
                intervals=intervals,
                count=count,
                min_candles=bt.min_candles,
                cfg=_backtest_cfg(ctx, args),
                gate=gate,
            )
        finally:
            await _close_source(source)

    try:
        report = asyncio.run(run())
    except StrategyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(render_scan(report))

    if not args.no_register:
        for item in report.passed:
            _register(ctx, ref=args.strategy, symbol=item.result.symbol, interval=item.result.interval, metrics=item.result.metrics)
    return 0


def _cmd_fetch(ctx: CliContext, args: argparse.Namespace) -> int:
    from gauntlet.backtest.io import write_candles_csv
    from gauntlet.backtest.source import CsvCandleSource, HttpCandleSource
    from gauntlet.core.exceptions import ConfigError, DataSourceError

    if args.interval <= 0:
        print(f"error: interval must be positive: {args.interval}", file=sys.stderr)
        return 1

    count = _candle_count(ctx, args.count)
    if count is None:
        return 1
    try:
        candles = asyncio.run(
            _fetch(HttpCandleSource.from_settings(ctx.config.data), symbol=args.symbol, interval=args.interval, count=count, min_candles=0)
        )
    except (DataSourceError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    out_dir = Path(args.out) if args.out else ctx.repo_root / ctx.config.data_dir / "candles"
    path = write_candles_csv(CsvCandleSource(out_dir).path_for(args.symbol, args.interval), candles)
    print(f"Wrote {len(candles)} candles to {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    from gauntlet.core.config import Config
    from gauntlet.core.exceptions import ConfigError
    from gauntlet.core.logging import configure_logging

    repo_root = _repo_root_from_cwd()
    try:
        config = Config.discover(repo_root)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    configure_logging(config.logging)

    ctx = CliContext(repo_root=repo_root, config=config)

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "backtest": _cmd_backtest,
        "scan": _cmd_scan,
        "fetch": _cmd_fetch,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
