from __future__ import annotations

import math

import numpy as np
import pytest

from gauntlet.backtest.simulator import Trade
from gauntlet.backtest.strategies.base import Side
from gauntlet.backtest.validation import GateConfig, Metrics, compute_metrics, evaluate_gate, profit_factor, sharpe


def _trades(*pnls: float) -> list[Trade]:
    return [
        Trade(side=Side.LONG, entry_price=100.0, exit_price=100.0 + p, pnl_percent=p, entry_index=i, exit_index=i + 1, entry_time=i, exit_time=i + 1)
        for i, p in enumerate(pnls)
    ]


def test_sharpe_edge_cases():
    assert sharpe(np.array([])) == 0.0
    assert sharpe(np.array([2.5])) == 2.5
    assert sharpe(np.array([1.0, 1.0, 1.0])) == 0.0


def test_sharpe_uses_population_stddev():
    r = np.array([1.0, 3.0])
    assert sharpe(r) == pytest.approx(2.0 / 1.0)


def test_profit_factor_rules():
    assert profit_factor(np.array([2.0, -1.0])) == pytest.approx(2.0)
    assert math.isinf(profit_factor(np.array([1.0, 2.0])))
    assert profit_factor(np.array([-1.0, -2.0])) == 0.0
    assert profit_factor(np.array([])) == 0.0


def test_compute_metrics_empty_ledger():
    m = compute_metrics(trades=[])
    assert m == Metrics()


def test_compute_metrics_counts_and_averages():
    m = compute_metrics(trades=_trades(2.0, -1.0, 0.0, 3.0, -2.0), max_drawdown_percent=4.2)

    assert m.total_trades == 5
    assert (m.winning_trades, m.losing_trades, m.breakeven_trades) == (2, 2, 1)
    assert m.total_trades == m.winning_trades + m.losing_trades + m.breakeven_trades
    assert m.win_rate == pytest.approx(40.0)
    assert m.total_pnl_percent == pytest.approx(2.0)
    assert m.avg_trade_percent == pytest.approx(0.4)
    assert m.avg_win_percent == pytest.approx(2.5)
    assert m.avg_loss_percent == pytest.approx(1.5)
    assert m.profit_factor == pytest.approx(5.0 / 3.0)
    assert m.max_drawdown_percent == 4.2


def test_streaks_count_breakeven_as_loss():
    m = compute_metrics(trades=_trades(1.0, 1.0, 1.0, 0.0, -1.0, 1.0))
    assert m.max_consecutive_wins == 3
    assert m.max_consecutive_losses == 2


@pytest.mark.parametrize("pnls", [(5.0,), (-1.0, -2.0), (1.0, -1.0, 0.0), (3.0, 2.0, -7.0, 0.5)])
def test_metric_ranges(pnls):
    m = compute_metrics(trades=_trades(*pnls))
    assert 0.0 <= m.win_rate <= 100.0
    assert m.profit_factor >= 0.0


def test_gate_all_four_conditions():
    good = Metrics(total_trades=10, win_rate=60.0, total_pnl_percent=5.0, sharpe_ratio=0.8)
    assert evaluate_gate(good).passed

    res = evaluate_gate(Metrics(total_trades=4, win_rate=44.9, total_pnl_percent=0.0, sharpe_ratio=0.49))
    assert not res.passed
    assert len(res.failures) == 4


def test_gate_boundaries_are_inclusive_except_pnl():
    at_bar = Metrics(total_trades=5, win_rate=45.0, total_pnl_percent=0.01, sharpe_ratio=0.5)
    assert evaluate_gate(at_bar).passed

    zero_pnl = Metrics(total_trades=5, win_rate=45.0, total_pnl_percent=0.0, sharpe_ratio=0.5)
    res = evaluate_gate(zero_pnl)
    assert not res.passed
    assert res.failures[0].startswith("total PnL")


def test_gate_custom_thresholds():
    m = Metrics(total_trades=2, win_rate=100.0, total_pnl_percent=1.0, sharpe_ratio=3.0)
    assert not evaluate_gate(m).passed
    assert evaluate_gate(m, GateConfig(min_trades=2)).passed
