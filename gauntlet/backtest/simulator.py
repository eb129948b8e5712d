"""gauntlet.backtest.simulator

Single-asset, single-slot backtest simulator.

Deliberately minimal but causal:
- walk forward one candle at a time from a fixed warm-up offset
- the strategy sees only candles [0, i] (a CandleView), never the future
- one position at most: FLAT -> LONG/SHORT -> FLAT, no pyramiding
- an opposing signal closes and, on the same bar, reverses
- fills at the bar's close; fees and slippage are zero unless configured

Protective exits are opt-in. When enabled, each entry asks the strategy for
ATR-based stop-loss / take-profit levels, and every later bar checks its
high/low against them before the signal is acted on. A bar that takes a
protective exit opens nothing.

The equity curve compounds each closed trade and exists only to measure
drawdown. The end-of-data force close appends a trade without touching the
equity curve; that asymmetry is kept on purpose so results stay comparable
with historical runs.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import numpy as np

from gauntlet import DEFAULT_WARMUP
from gauntlet.backtest.candles import CandleSeries
from gauntlet.backtest.indicators import atr
from gauntlet.backtest.strategies.base import Side, Signal, Strategy, coerce_signal
from gauntlet.core.exceptions import StrategyError

logger = logging.getLogger(__name__)


class SimState(StrEnum):
    FLAT = "flat"
    LONG = "long"
    SHORT = "short"


class ExitReason(StrEnum):
    SIGNAL = "signal"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    END_OF_DATA = "end_of_data"


@dataclass(frozen=True, slots=True)
class SimConfig:
    warmup: int = DEFAULT_WARMUP
    initial_equity: float = 100.0
    protective_exits: bool = False
    atr_period: int = 14
    fee_bps: float = 0.0  # per fill, charged on entry and on exit
    slippage_bps: float = 0.0


@dataclass(frozen=True, slots=True)
class Position:
    side: Side
    entry_price: float
    entry_index: int
    entry_time: int
    stop_loss: float | None = None
    take_profit: float | None = None


@dataclass(frozen=True, slots=True)
class Trade:
    side: Side
    entry_price: float
    exit_price: float
    pnl_percent: float
    entry_index: int
    exit_index: int
    entry_time: int
    exit_time: int
    exit_reason: ExitReason = ExitReason.SIGNAL
    fee_percent: float = 0.0


@dataclass(slots=True)
class EquityCurve:
    equity: float = 100.0
    peak: float = 100.0
    max_drawdown_percent: float = 0.0
    points: list[float] = field(default_factory=list)

    @classmethod
    def starting_at(cls, equity: float) -> EquityCurve:
        return cls(equity=equity, peak=equity, points=[equity])

    def apply(self, pnl_percent: float) -> None:
        self.equity *= 1.0 + pnl_percent / 100.0
        self.peak = max(self.peak, self.equity)
        drawdown = (self.peak - self.equity) / self.peak * 100.0
        self.max_drawdown_percent = max(self.max_drawdown_percent, drawdown)
        self.points.append(self.equity)


@dataclass(frozen=True, slots=True)
class SimResult:
    trades: tuple[Trade, ...]
    equity: EquityCurve
    final_state: SimState
    steps: int

    @property
    def max_drawdown_percent(self) -> float:
        return self.equity.max_drawdown_percent


def pnl_percent(side: Side | str, entry_price: float, exit_price: float) -> float:
    if Side(side) is Side.LONG:
        return (exit_price - entry_price) / entry_price * 100.0
    return (entry_price - exit_price) / entry_price * 100.0


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def initialize_strategy(strategy: Strategy, candles: CandleSeries) -> None:
    """Run the optional one-off setup hook. Any failure aborts the run."""

    init = getattr(strategy, "initialize", None)
    if init is None:
        return
    try:
        await _resolve(init(candles))
    except Exception as e:
        raise StrategyError(f"strategy {getattr(strategy, 'id', '?')} failed to initialize: {e}") from e


def _fill(price: float, side: Side, *, entering: bool, slippage_bps: float) -> float:
    """Price after slippage: buys fill higher, sells fill lower."""

    slip = slippage_bps / 10_000.0
    buying = (side is Side.LONG) == entering
    return price * (1.0 + slip) if buying else price * (1.0 - slip)


def _close(position: Position, *, price: float, index: int, time: int, reason: ExitReason, cfg: SimConfig) -> Trade:
    exit_price = _fill(price, position.side, entering=False, slippage_bps=cfg.slippage_bps)
    fee_percent = 2.0 * cfg.fee_bps / 100.0
    return Trade(
        side=position.side,
        entry_price=position.entry_price,
        exit_price=exit_price,
        pnl_percent=pnl_percent(position.side, position.entry_price, exit_price) - fee_percent,
        entry_index=position.entry_index,
        exit_index=index,
        entry_time=position.entry_time,
        exit_time=time,
        exit_reason=reason,
        fee_percent=fee_percent,
    )


def _opposes(position: Position, signal: Signal) -> bool:
    return (position.side is Side.LONG and signal is Signal.SELL) or (position.side is Side.SHORT and signal is Signal.BUY)


def _strategy_id(strategy: Any) -> str:
    return str(getattr(strategy, "id", type(strategy).__name__))


def _checked_signal(strategy: Strategy, raw: Any) -> Signal:
    try:
        return coerce_signal(raw)
    except ValueError as e:
        raise StrategyError(f"strategy {_strategy_id(strategy)} returned an invalid signal: {raw!r}") from e


def _open(strategy: Strategy, *, side: Side, price: float, index: int, time: int, atr_value: float, cfg: SimConfig) -> Position:
    entry = _fill(price, side, entering=True, slippage_bps=cfg.slippage_bps)
    if not (cfg.protective_exits and np.isfinite(atr_value)):
        return Position(side=side, entry_price=entry, entry_index=index, entry_time=time)
    try:
        levels = strategy.get_suggested_sltp(entry, atr_value, side)
    except Exception as e:
        raise StrategyError(f"strategy {_strategy_id(strategy)} failed to suggest SL/TP: {e}") from e
    return Position(
        side=side,
        entry_price=entry,
        entry_index=index,
        entry_time=time,
        stop_loss=float(levels.stop_loss),
        take_profit=float(levels.take_profit),
    )


def _protective_exit(position: Position, *, high: float, low: float) -> tuple[float, ExitReason] | None:
    """Level and reason of the first protective exit this bar reaches. Take-profit is checked first."""

    if position.stop_loss is None or position.take_profit is None:
        return None
    if position.side is Side.LONG:
        if high >= position.take_profit:
            return position.take_profit, ExitReason.TAKE_PROFIT
        if low <= position.stop_loss:
            return position.stop_loss, ExitReason.STOP_LOSS
        return None
    if low <= position.take_profit:
        return position.take_profit, ExitReason.TAKE_PROFIT
    if high >= position.stop_loss:
        return position.stop_loss, ExitReason.STOP_LOSS
    return None


async def simulate(*, strategy: Strategy, candles: CandleSeries, cfg: SimConfig | None = None) -> SimResult:
    """Walk the series and return the trade ledger plus equity curve.

    analyze() is awaited to completion before the next index is considered.
    A series no longer than the warm-up yields an empty ledger.
    """

    cfg = cfg or SimConfig()

    await initialize_strategy(strategy, candles)

    trades: list[Trade] = []
    curve = EquityCurve.starting_at(cfg.initial_equity)
    position: Position | None = None
    close = candles.close
    high = candles.high
    low = candles.low
    start = candles.column("start")
    t_len = len(candles)
    # ATR at i depends on bars [0, i] only.
    atr_col = atr(high, low, close, cfg.atr_period) if cfg.protective_exits else np.full(t_len, np.nan)
    steps = 0

    for i in range(cfg.warmup, t_len):
        signal = _checked_signal(strategy, await _resolve(strategy.analyze(candles.prefix(i + 1))))
        price = float(close[i])
        ts = int(start[i])
        steps += 1

        if position is not None:
            hit = _protective_exit(position, high=float(high[i]), low=float(low[i]))
            if hit is not None:
                level, reason = hit
                trade = _close(position, price=level, index=i, time=ts, reason=reason, cfg=cfg)
                trades.append(trade)
                curve.apply(trade.pnl_percent)
                position = None
                logger.debug("sim_trade_closed", extra={"side": str(trade.side), "reason": str(reason), "index": i})
                continue

        if position is not None and _opposes(position, signal):
            trade = _close(position, price=price, index=i, time=ts, reason=ExitReason.SIGNAL, cfg=cfg)
            trades.append(trade)
            curve.apply(trade.pnl_percent)
            position = None
            logger.debug("sim_trade_closed", extra={"side": str(trade.side), "pnl_percent": trade.pnl_percent, "index": i})

        # Evaluated after the exit check: an opposing signal reverses on this bar.
        if position is None and signal is not Signal.HOLD:
            side = Side.LONG if signal is Signal.BUY else Side.SHORT
            position = _open(strategy, side=side, price=price, index=i, time=ts, atr_value=float(atr_col[i]), cfg=cfg)

    final_state = SimState.FLAT if position is None else SimState(str(position.side))

    if position is not None:
        last = t_len - 1
        # The force close leaves equity, peak and drawdown untouched.
        trades.append(
            _close(position, price=float(close[last]), index=last, time=int(start[last]), reason=ExitReason.END_OF_DATA, cfg=cfg)
        )

    logger.debug("sim_completed", extra={"steps": steps, "trades": len(trades), "final_state": str(final_state)})
    return SimResult(trades=tuple(trades), equity=curve, final_state=final_state, steps=steps)
