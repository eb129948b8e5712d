"""gauntlet.backtest.engine

Backtest entry point.

One run:
- strategy.initialize(series), if the strategy has one
- simulator walks the series, strategy answers per bar
- validation turns the ledger into metrics

The clock covers initialize + walk; it is a diagnostic, not a statistic.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from gauntlet import DEFAULT_WARMUP
from gauntlet.backtest.candles import CandleSeries
from gauntlet.backtest.simulator import SimConfig, SimResult, simulate
from gauntlet.backtest.strategies.base import Strategy
from gauntlet.backtest.validation import Metrics, compute_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BacktestConfig:
    warmup: int = DEFAULT_WARMUP
    initial_equity: float = 100.0
    protective_exits: bool = False
    atr_period: int = 14
    fee_bps: float = 0.0
    slippage_bps: float = 0.0

    def sim_config(self) -> SimConfig:
        return SimConfig(
            warmup=self.warmup,
            initial_equity=self.initial_equity,
            protective_exits=self.protective_exits,
            atr_period=self.atr_period,
            fee_bps=self.fee_bps,
            slippage_bps=self.slippage_bps,
        )


@dataclass(frozen=True, slots=True)
class BacktestResult:
    strategy_id: str
    strategy_name: str
    symbol: str
    interval: int
    candles: int
    sim: SimResult
    metrics: Metrics


async def run_backtest_async(
    *,
    strategy: Strategy,
    candles: CandleSeries,
    symbol: str = "",
    interval: int = 0,
    cfg: BacktestConfig | None = None,
) -> BacktestResult:
    cfg = cfg or BacktestConfig()

    started = time.perf_counter()
    sim = await simulate(strategy=strategy, candles=candles, cfg=cfg.sim_config())
    duration_ms = (time.perf_counter() - started) * 1000.0

    metrics = compute_metrics(trades=sim.trades, max_drawdown_percent=sim.max_drawdown_percent, duration_ms=duration_ms)
    strategy_id = str(getattr(strategy, "id", type(strategy).__name__))

    logger.info(
        "backtest_completed",
        extra={
            "strategy": strategy_id,
            "symbol": symbol,
            "interval": interval,
            "trades": metrics.total_trades,
            "duration_ms": round(duration_ms, 1),
        },
    )
    return BacktestResult(
        strategy_id=strategy_id,
        strategy_name=str(getattr(strategy, "name", strategy_id)),
        symbol=symbol,
        interval=int(interval),
        candles=len(candles),
        sim=sim,
        metrics=metrics,
    )


def run_backtest(
    *,
    strategy: Strategy,
    candles: CandleSeries,
    symbol: str = "",
    interval: int = 0,
    cfg: BacktestConfig | None = None,
) -> BacktestResult:
    """Synchronous wrapper. Do not call from inside a running event loop."""

    return asyncio.run(run_backtest_async(strategy=strategy, candles=candles, symbol=symbol, interval=interval, cfg=cfg))
