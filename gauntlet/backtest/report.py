"""gauntlet.backtest.report

Plain-text rendering of backtest results. No colors, no tables library:
the output is meant for terminals and log files alike.
"""

from __future__ import annotations

import math

from gauntlet.backtest.engine import BacktestResult
from gauntlet.backtest.scan import ScanReport
from gauntlet.backtest.validation import GateConfig, GateResult


def _fmt_pf(pf: float) -> str:
    return "inf" if math.isinf(pf) else f"{pf:.2f}"


def render_result(result: BacktestResult) -> str:
    m = result.metrics
    lines = [
        "=== Results ===",
        "",
        f"Strategy:      {result.strategy_id}",
        f"Symbol:        {result.symbol} @ {result.interval}m",
        f"Candles:       {result.candles}",
        f"Total Trades:  {m.total_trades} ({m.winning_trades}W / {m.losing_trades}L / {m.breakeven_trades}BE)",
        f"Win Rate:      {m.win_rate:.1f}%",
        f"Total PnL:     {m.total_pnl_percent:.2f}%",
        f"Avg Trade:     {m.avg_trade_percent:.2f}%",
        f"Avg Win/Loss:  {m.avg_win_percent:.2f}% / {m.avg_loss_percent:.2f}%",
        f"Sharpe:        {m.sharpe_ratio:.2f}",
        f"Max DD:        {m.max_drawdown_percent:.1f}%",
        f"Profit Factor: {_fmt_pf(m.profit_factor)}",
        f"Streaks:       {m.max_consecutive_wins} wins / {m.max_consecutive_losses} losses",
        f"Duration:      {m.duration_ms:.0f}ms",
    ]
    return "\n".join(lines)


def render_gate(gate_result: GateResult, gate: GateConfig) -> str:
    if gate_result.passed:
        return "PASS - strategy meets minimum criteria"
    lines = ["FAIL - strategy does not meet minimum criteria"]
    lines.extend(f"  - {f}" for f in gate_result.failures)
    lines.append(
        f"  Required: trades>={gate.min_trades}, winRate>={gate.min_win_rate:g}%, "
        f"totalPnL>{gate.min_total_pnl_percent:g}, sharpe>={gate.min_sharpe:g}"
    )
    return "\n".join(lines)


def render_scan(report: ScanReport) -> str:
    header = "".join(
        [
            "Symbol".ljust(12),
            "Int".ljust(6),
            "Trades".ljust(8),
            "Win%".ljust(8),
            "PnL%".ljust(10),
            "PF".ljust(8),
            "Sharpe".ljust(8),
            "MaxDD%".ljust(8),
            "Score".ljust(8),
            "Gate",
        ]
    )
    lines = [header, "-" * len(header)]
    for it in report.ranked:
        r, m = it.result, it.result.metrics
        lines.append(
            "".join(
                [
                    r.symbol[:11].ljust(12),
                    f"{r.interval}m".ljust(6),
                    str(m.total_trades).ljust(8),
                    f"{m.win_rate:.1f}".ljust(8),
                    f"{m.total_pnl_percent:+.2f}".ljust(10),
                    _fmt_pf(m.profit_factor).ljust(8),
                    f"{m.sharpe_ratio:.2f}".ljust(8),
                    f"{m.max_drawdown_percent:.1f}".ljust(8),
                    f"{it.score:.2f}".ljust(8),
                    "PASS" if it.gate.passed else "fail",
                ]
            )
        )
    if report.skipped:
        lines.append("")
        lines.append(f"Skipped ({len(report.skipped)}):")
        lines.extend(f"  {s.symbol}@{s.interval}m: {s.reason}" for s in report.skipped)
    lines.append("")
    lines.append(f"{len(report.passed)}/{len(report.items)} runs passed")
    return "\n".join(lines)
