from __future__ import annotations

import pytest

from gauntlet.backtest.engine import BacktestConfig, run_backtest, run_backtest_async


def test_engine_runs_and_computes_metrics(make_series, scripted):
    candles = make_series([100, 110, 121, 121])
    res = run_backtest(
        strategy=scripted(["buy", "sell", "hold", "hold"]),
        candles=candles,
        symbol="BTC-USD",
        interval=15,
        cfg=BacktestConfig(warmup=0),
    )

    assert res.strategy_id == "test/scripted"
    assert res.strategy_name == "Scripted"
    assert (res.symbol, res.interval, res.candles) == ("BTC-USD", 15, 4)
    # long 100->110, short 110->121 forced at the end
    assert res.metrics.total_trades == 2
    assert res.metrics.winning_trades == 1
    assert res.metrics.losing_trades == 1
    assert res.metrics.total_pnl_percent == pytest.approx(0.0)
    assert res.metrics.max_drawdown_percent == 0.0
    assert res.metrics.duration_ms >= 0.0


def test_engine_default_warmup_skips_short_series(make_series, scripted):
    res = run_backtest(strategy=scripted(["buy"] * 40), candles=make_series([100.0] * 40))
    assert res.metrics.total_trades == 0
    assert res.metrics.sharpe_ratio == 0.0


@pytest.mark.anyio
async def test_engine_async_entry_point(make_series, scripted, caplog):
    caplog.set_level("INFO", logger="gauntlet")
    res = await run_backtest_async(strategy=scripted(["buy"]), candles=make_series([1.0, 2.0]), cfg=BacktestConfig(warmup=0))
    assert res.metrics.total_trades == 1
    assert any(r.getMessage() == "backtest_completed" for r in caplog.records)


def test_backtest_config_carries_execution_settings():
    sim = BacktestConfig(warmup=3, protective_exits=True, atr_period=7, fee_bps=5.0, slippage_bps=2.0).sim_config()
    assert (sim.warmup, sim.protective_exits, sim.atr_period) == (3, True, 7)
    assert (sim.fee_bps, sim.slippage_bps) == (5.0, 2.0)
    assert sim.initial_equity == 100.0
