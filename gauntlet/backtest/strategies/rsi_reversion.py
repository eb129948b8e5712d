"""gauntlet.backtest.strategies.rsi_reversion

RSI reversion (long and short):
- buy when RSI turns up out of oversold, or crosses back above it
- sell when RSI turns down out of overbought, or crosses back below it
- hold otherwise, and while RSI is still warming up

This is a toy baseline.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gauntlet.backtest.candles import CandleView
from gauntlet.backtest.indicators import rsi
from gauntlet.backtest.strategies.base import BaseStrategy, RiskProfile, Signal, StrategyCategory, StrategyMetadata


@dataclass(frozen=True, slots=True)
class RSIReversionStrategy(BaseStrategy):
    id: str = "mean_reversion/rsi-reversion-v1"
    name: str = "RSI Reversion"
    description: str = "Mean reversion on RSI extremes with a turn confirmation"
    category: StrategyCategory = StrategyCategory.MEAN_REVERSION
    risk_profile: RiskProfile | None = RiskProfile(
        atr_multiplier_sl=1.2,
        atr_multiplier_tp=2.0,
        min_sl_percent=0.8,
        max_sl_percent=3.0,
        min_tp_percent=1.5,
        max_tp_percent=5.0,
    )
    period: int = 7
    oversold: float = 30.0
    overbought: float = 70.0

    def get_metadata(self) -> StrategyMetadata:
        return StrategyMetadata(
            min_data_points=20,
            preferred_intervals=(15, 60),
            suitable_market_conditions=("ranging", "volatile"),
            complexity="simple",
            version="1.0.0",
        )

    def analyze(self, candles: CandleView) -> Signal:
        period = int(self.period)
        if period <= 1 or len(candles) < period + 5:
            return Signal.HOLD

        r = rsi(candles.close, period)
        cur, prev, prev2 = r[-1], r[-2], r[-3]
        if not (np.isfinite(cur) and np.isfinite(prev)):
            return Signal.HOLD

        oversold = float(self.oversold)
        overbought = float(self.overbought)
        # prev2 may still be NaN; NaN comparisons are False.
        turning_up = prev < oversold and cur > prev and cur > prev2
        turning_down = prev > overbought and cur < prev and cur < prev2
        crossed_up = prev <= oversold < cur
        crossed_down = prev >= overbought > cur

        if turning_up or crossed_up:
            return Signal.BUY
        if turning_down or crossed_down:
            return Signal.SELL
        return Signal.HOLD


strategy = RSIReversionStrategy()
