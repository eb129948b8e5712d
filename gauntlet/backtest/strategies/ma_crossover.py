"""gauntlet.backtest.strategies.ma_crossover

Moving average crossover with an RSI filter:
- buy on fast EMA crossing above slow EMA while RSI is in (45, 75)
- sell on fast EMA crossing below slow EMA while RSI is in (25, 55)
- hold otherwise

Crossovers only; being above the slow EMA is not itself a signal.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gauntlet.backtest.candles import CandleView
from gauntlet.backtest.indicators import ema, rsi
from gauntlet.backtest.strategies.base import BaseStrategy, Signal, StrategyCategory, StrategyMetadata


@dataclass(frozen=True, slots=True)
class MACrossoverStrategy(BaseStrategy):
    id: str = "momentum/ema-crossover-v1"
    name: str = "EMA Crossover"
    description: str = "Fast/slow EMA crossover confirmed by RSI momentum"
    category: StrategyCategory = StrategyCategory.MOMENTUM
    fast: int = 9
    slow: int = 21
    rsi_period: int = 14

    def get_metadata(self) -> StrategyMetadata:
        return StrategyMetadata(
            min_data_points=int(self.slow) + 5,
            preferred_intervals=(15, 60, 240),
            suitable_market_conditions=("trending",),
            complexity="simple",
            version="1.0.0",
        )

    def analyze(self, candles: CandleView) -> Signal:
        fast = int(self.fast)
        slow = int(self.slow)
        if fast <= 0 or slow <= 0 or fast >= slow or len(candles) < slow + 5:
            return Signal.HOLD

        close = candles.close
        f = ema(close, fast)
        s = ema(close, slow)
        r = rsi(close, int(self.rsi_period))

        if not np.all(np.isfinite([f[-1], s[-1], f[-2], s[-2], r[-1]])):
            return Signal.HOLD

        bullish_cross = f[-2] <= s[-2] and f[-1] > s[-1]
        bearish_cross = f[-2] >= s[-2] and f[-1] < s[-1]

        if bullish_cross and 45.0 < r[-1] < 75.0:
            return Signal.BUY
        if bearish_cross and 25.0 < r[-1] < 55.0:
            return Signal.SELL
        return Signal.HOLD


strategy = MACrossoverStrategy()
