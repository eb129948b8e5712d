"""gauntlet.backtest.strategies.breakout

Channel breakout:
- buy when close > max(high) of the previous `lookback` bars
- sell when close < min(low) of the previous `lookback` bars
- hold inside the channel

Uses the category risk profile (trend) unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gauntlet.backtest.candles import CandleView
from gauntlet.backtest.indicators import rolling_max, rolling_min
from gauntlet.backtest.strategies.base import BaseStrategy, Signal, StrategyCategory


@dataclass(frozen=True, slots=True)
class BreakoutStrategy(BaseStrategy):
    id: str = "trend/channel-breakout-v1"
    name: str = "Channel Breakout"
    description: str = "Trade closes outside the prior N-bar high/low channel"
    category: StrategyCategory = StrategyCategory.TREND
    lookback: int = 20

    def analyze(self, candles: CandleView) -> Signal:
        n = int(self.lookback)
        if n <= 1 or len(candles) <= n:
            return Signal.HOLD

        # Only the last bar matters; slice so the rolling window stays O(n).
        window = slice(-(n + 1), None)
        upper = rolling_max(candles.high[window], n)[-1]
        lower = rolling_min(candles.low[window], n)[-1]
        close = candles.close[-1]
        if not (np.isfinite(upper) and np.isfinite(lower)):
            return Signal.HOLD

        if close > upper:
            return Signal.BUY
        if close < lower:
            return Signal.SELL
        return Signal.HOLD


strategy = BreakoutStrategy()
