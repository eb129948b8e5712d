"""gauntlet.backtest.validation

Performance metrics + the pass/fail gate.

Deliberately simple, per-trade statistics:
- total PnL is the plain sum of trade percentages (not compounded)
- Sharpe is mean / population stddev of trade returns, not annualized
- max drawdown comes from the simulator's compounding equity curve

Enough to prevent self-deception, not a risk report.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from gauntlet.backtest.simulator import Trade


@dataclass(frozen=True, slots=True)
class Metrics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    breakeven_trades: int = 0
    win_rate: float = 0.0
    total_pnl_percent: float = 0.0
    avg_trade_percent: float = 0.0
    avg_win_percent: float = 0.0
    avg_loss_percent: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown_percent: float = 0.0
    profit_factor: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    duration_ms: float = 0.0


def sharpe(returns: np.ndarray) -> float:
    """Mean / population stddev. Fewer than two returns: stddev is taken as 1."""

    r = np.asarray(returns, dtype=np.float64)
    if r.size == 0:
        return 0.0
    mu = float(np.mean(r))
    sd = float(np.std(r)) if r.size > 1 else 1.0
    if sd == 0.0:
        return 0.0
    return mu / sd


def profit_factor(returns: np.ndarray) -> float:
    r = np.asarray(returns, dtype=np.float64)
    gross_profit = float(np.sum(r[r > 0]))
    gross_loss = float(abs(np.sum(r[r < 0])))
    if gross_loss > 0:
        return gross_profit / gross_loss
    return math.inf if gross_profit > 0 else 0.0


def _max_streaks(returns: np.ndarray) -> tuple[int, int]:
    best_win = best_loss = cur_win = cur_loss = 0
    for r in returns:
        if r > 0:
            cur_win += 1
            cur_loss = 0
        else:
            cur_loss += 1
            cur_win = 0
        best_win = max(best_win, cur_win)
        best_loss = max(best_loss, cur_loss)
    return best_win, best_loss


def compute_metrics(*, trades: Sequence[Trade], max_drawdown_percent: float = 0.0, duration_ms: float = 0.0) -> Metrics:
    if not trades:
        return Metrics(max_drawdown_percent=float(max_drawdown_percent), duration_ms=float(duration_ms))

    r = np.array([t.pnl_percent for t in trades], dtype=np.float64)
    n = int(r.size)
    wins = r[r > 0]
    losses = r[r < 0]
    total = float(np.sum(r))
    streak_win, streak_loss = _max_streaks(r)

    return Metrics(
        total_trades=n,
        winning_trades=int(wins.size),
        losing_trades=int(losses.size),
        breakeven_trades=int(n - wins.size - losses.size),
        win_rate=float(wins.size) / n * 100.0,
        total_pnl_percent=total,
        avg_trade_percent=total / n,
        avg_win_percent=float(np.mean(wins)) if wins.size else 0.0,
        avg_loss_percent=float(abs(np.mean(losses))) if losses.size else 0.0,
        sharpe_ratio=sharpe(r),
        max_drawdown_percent=float(max_drawdown_percent),
        profit_factor=profit_factor(r),
        max_consecutive_wins=streak_win,
        max_consecutive_losses=streak_loss,
        duration_ms=float(duration_ms),
    )


@dataclass(frozen=True, slots=True)
class GateConfig:
    min_trades: int = 5
    min_win_rate: float = 45.0
    min_total_pnl_percent: float = 0.0  # strictly greater than
    min_sharpe: float = 0.5


@dataclass(frozen=True, slots=True)
class GateResult:
    passed: bool
    failures: list[str] = field(default_factory=list)


def evaluate_gate(metrics: Metrics, gate: GateConfig | None = None) -> GateResult:
    """trades >= N, win rate >= W, total PnL > P, sharpe >= S. All four or nothing."""

    gate = gate or GateConfig()
    failures: list[str] = []
    if metrics.total_trades < gate.min_trades:
        failures.append(f"trades {metrics.total_trades} < {gate.min_trades}")
    if metrics.win_rate < gate.min_win_rate:
        failures.append(f"win rate {metrics.win_rate:.1f}% < {gate.min_win_rate:.1f}%")
    if not metrics.total_pnl_percent > gate.min_total_pnl_percent:
        failures.append(f"total PnL {metrics.total_pnl_percent:.2f}% <= {gate.min_total_pnl_percent:.2f}%")
    if metrics.sharpe_ratio < gate.min_sharpe:
        failures.append(f"sharpe {metrics.sharpe_ratio:.2f} < {gate.min_sharpe:.2f}")
    return GateResult(passed=not failures, failures=failures)
