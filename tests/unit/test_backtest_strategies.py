from __future__ import annotations

import numpy as np
import pytest

from gauntlet.backtest.candles import CandleSeries
from gauntlet.backtest.engine import run_backtest
from gauntlet.backtest.strategies import (
    DEFAULT_RISK_PROFILES,
    BaseStrategy,
    BreakoutStrategy,
    MACrossoverStrategy,
    RiskProfile,
    RSIReversionStrategy,
    Side,
    Signal,
    Strategy,
    StrategyCategory,
    StrategyMetadata,
    calculate_sltp,
    risk_profile_for,
)
from gauntlet.backtest.strategies.base import coerce_signal

PROFILE = RiskProfile(
    atr_multiplier_sl=1.5,
    atr_multiplier_tp=3.0,
    min_sl_percent=1.0,
    max_sl_percent=4.0,
    min_tp_percent=2.0,
    max_tp_percent=10.0,
)


def test_sltp_long_example():
    out = calculate_sltp(100.0, 2.0, Side.LONG, PROFILE)
    assert out.stop_loss == pytest.approx(97.0)
    assert out.take_profit == pytest.approx(106.0)


def test_sltp_short_is_inverted_and_clamped():
    # atr 10% -> sl 15% clamped to 4%, tp 30% clamped to 10%
    out = calculate_sltp(100.0, 10.0, "short", PROFILE)
    assert out.stop_loss == pytest.approx(104.0)
    assert out.take_profit == pytest.approx(90.0)


def test_sltp_min_bounds_apply():
    out = calculate_sltp(100.0, 0.01, Side.LONG, PROFILE)
    assert out.stop_loss == pytest.approx(99.0)
    assert out.take_profit == pytest.approx(102.0)


def test_risk_profile_table_and_fallback():
    assert set(DEFAULT_RISK_PROFILES) == set(StrategyCategory)
    assert risk_profile_for("trend") is DEFAULT_RISK_PROFILES[StrategyCategory.TREND]
    assert risk_profile_for("no-such-category") is DEFAULT_RISK_PROFILES[StrategyCategory.MOMENTUM]


def test_base_strategy_defaults_and_override():
    class Plain(BaseStrategy):
        id = "test/plain"
        category = StrategyCategory.SCALPING

        def analyze(self, candles):
            return Signal.HOLD

    p = Plain()
    assert p.get_risk_profile() is DEFAULT_RISK_PROFILES[StrategyCategory.SCALPING]
    assert p.get_metadata() == StrategyMetadata()
    assert p.get_metadata().min_data_points == 100
    assert p.get_metadata().preferred_intervals == (15, 60, 240)

    rsi = RSIReversionStrategy()
    assert rsi.get_risk_profile().atr_multiplier_sl == 1.2
    assert rsi.get_risk_profile() is not DEFAULT_RISK_PROFILES[StrategyCategory.MEAN_REVERSION]
    assert rsi.get_metadata().min_data_points == 20


def test_suggested_sltp_uses_strategy_risk_profile():
    # ATR 2% of price: the 1.2x override gives a 2.4% stop, the category table would give 3%.
    out = RSIReversionStrategy().get_suggested_sltp(100.0, 2.0, "long")
    assert out.stop_loss == pytest.approx(97.6)
    assert out.take_profit == pytest.approx(104.0)

    short = RSIReversionStrategy().get_suggested_sltp(100.0, 2.0, Side.SHORT)
    assert short.stop_loss == pytest.approx(102.4)
    assert short.take_profit == pytest.approx(96.0)


def test_strategy_protocol_does_not_require_inheritance():
    class Duck:
        id = "test/duck"
        name = "Duck"
        description = ""
        category = "momentum"

        def analyze(self, candles):
            return "hold"

        def get_metadata(self):
            return StrategyMetadata()

        def get_risk_profile(self):
            return PROFILE

        def get_suggested_sltp(self, price, atr, side):
            return calculate_sltp(price, atr, side, PROFILE)

    assert isinstance(Duck(), Strategy)
    assert isinstance(BreakoutStrategy(), Strategy)


def test_coerce_signal():
    assert coerce_signal("BUY") is Signal.BUY
    assert coerce_signal(Signal.SELL) is Signal.SELL
    with pytest.raises(ValueError):
        coerce_signal("maybe")
    with pytest.raises(ValueError):
        coerce_signal(None)


def test_reference_strategies_hold_without_enough_data():
    tiny = CandleSeries.from_arrays(close=[100.0, 101.0, 102.0])
    for s in (RSIReversionStrategy(), MACrossoverStrategy(), BreakoutStrategy()):
        assert s.analyze(tiny.prefix(3)) is Signal.HOLD


def test_breakout_fires_on_new_high_and_low():
    flat = [100.0] * 25
    up = CandleSeries.from_arrays(close=flat + [105.0])
    down = CandleSeries.from_arrays(close=flat + [95.0])
    s = BreakoutStrategy(lookback=20)
    assert s.analyze(up.prefix(len(up))) is Signal.BUY
    assert s.analyze(down.prefix(len(down))) is Signal.SELL
    assert s.analyze(up.prefix(25)) is Signal.HOLD


def test_ma_crossover_buys_on_rally_cross():
    # Choppy decline then choppy rally keeps RSI off its extremes.
    steps = [-2.0, 1.0] * 20 + [2.0, -1.0] * 20
    close = 150.0 + np.cumsum(steps)
    series = CandleSeries.from_arrays(close=close)
    s = MACrossoverStrategy()
    signals = {i: s.analyze(series.prefix(i)) for i in range(s.slow + 5, len(series) + 1)}

    assert all(sig is not Signal.BUY for i, sig in signals.items() if i <= 40)
    assert any(sig is Signal.BUY for i, sig in signals.items() if i > 40)


def test_rsi_reversion_buys_after_selloff_turn():
    close = [100.0 - i for i in range(20)] + [81.5]
    series = CandleSeries.from_arrays(close=close)
    assert RSIReversionStrategy().analyze(series.prefix(len(series))) is Signal.BUY


def test_reference_strategies_smoke_run(random_walk):
    for s in (RSIReversionStrategy(), MACrossoverStrategy(), BreakoutStrategy()):
        res = run_backtest(strategy=s, candles=random_walk)
        m = res.metrics
        assert res.strategy_id == s.id
        assert m.total_trades == m.winning_trades + m.losing_trades + m.breakeven_trades
        assert 0.0 <= m.win_rate <= 100.0
