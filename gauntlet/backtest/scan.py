"""gauntlet.backtest.scan

Scan harness: one strategy, many symbols x intervals.

Runs are sequential and independent: each gets its own series, ledger and
equity curve. A symbol whose data cannot be fetched (or is too short) is
recorded as skipped; it never aborts the scan.

Results are ranked by a composite score rather than raw PnL, so a lucky
run with one trade or a deep drawdown does not top the table.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from gauntlet.backtest.engine import BacktestConfig, BacktestResult, run_backtest_async
from gauntlet.backtest.source import CandleSource
from gauntlet.backtest.strategies.base import Strategy
from gauntlet.backtest.validation import GateConfig, GateResult, Metrics, evaluate_gate
from gauntlet.core.exceptions import DataSourceError

logger = logging.getLogger(__name__)

MIN_RANKED_TRADES = 5


def rank_score(m: Metrics) -> float:
    """Composite quality score, higher is better.

    Product of: positive Sharpe, profit factor capped at 3, a win-rate factor
    in [0.5, 1.0], a drawdown penalty, sqrt(trades) / 5 and 1 + log10(1 + PnL).
    Runs with fewer than MIN_RANKED_TRADES trades, no wins or no profit score 0.
    """

    if m.total_trades < MIN_RANKED_TRADES or m.win_rate <= 0.0 or m.profit_factor <= 0.0:
        return 0.0

    sharpe_score = max(m.sharpe_ratio, 0.0)
    pf_score = min(m.profit_factor, 3.0)
    win_rate_factor = 0.5 + min(m.win_rate, 70.0) / 140.0
    dd_penalty = 1.0 / (1.0 + m.max_drawdown_percent / 10.0) if m.max_drawdown_percent > 0 else 1.0
    trade_factor = math.sqrt(m.total_trades) / 5.0
    return_factor = math.log10(1.0 + m.total_pnl_percent) if m.total_pnl_percent > 0 else 0.0
    return sharpe_score * pf_score * win_rate_factor * dd_penalty * trade_factor * (1.0 + return_factor)


@dataclass(frozen=True, slots=True)
class ScanItem:
    result: BacktestResult
    gate: GateResult

    @property
    def score(self) -> float:
        return rank_score(self.result.metrics)


@dataclass(frozen=True, slots=True)
class SkippedRun:
    symbol: str
    interval: int
    reason: str


@dataclass(frozen=True, slots=True)
class ScanReport:
    items: list[ScanItem] = field(default_factory=list)
    skipped: list[SkippedRun] = field(default_factory=list)

    @property
    def passed(self) -> list[ScanItem]:
        return [it for it in self.items if it.gate.passed]

    @property
    def ranked(self) -> list[ScanItem]:
        """Items by score, best first; PnL breaks ties."""

        return sorted(self.items, key=lambda it: (it.score, it.result.metrics.total_pnl_percent), reverse=True)


async def scan_symbols(
    *,
    strategy: Strategy,
    source: CandleSource,
    symbols: Iterable[str],
    intervals: Iterable[int],
    count: int = 500,
    min_candles: int = 100,
    cfg: BacktestConfig | None = None,
    gate: GateConfig | None = None,
) -> ScanReport:
    items: list[ScanItem] = []
    skipped: list[SkippedRun] = []
    symbols = list(symbols)
    intervals = [int(i) for i in intervals]

    for interval in intervals:
        for symbol in symbols:
            try:
                candles = await source.fetch_historical_data(symbol, interval, count)
            except DataSourceError as e:
                logger.warning("scan_fetch_failed", extra={"symbol": symbol, "interval": interval, "error": str(e)})
                skipped.append(SkippedRun(symbol=symbol, interval=interval, reason=f"fetch failed: {e}"))
                continue

            if len(candles) < min_candles:
                skipped.append(SkippedRun(symbol=symbol, interval=interval, reason=f"insufficient data ({len(candles)} < {min_candles})"))
                continue

            result = await run_backtest_async(strategy=strategy, candles=candles, symbol=symbol, interval=interval, cfg=cfg)
            items.append(ScanItem(result=result, gate=evaluate_gate(result.metrics, gate)))

    logger.info("scan_completed", extra={"runs": len(items), "skipped": len(skipped), "passed": sum(1 for it in items if it.gate.passed)})
    return ScanReport(items=items, skipped=skipped)
