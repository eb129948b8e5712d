"""gauntlet.backtest.strategies

Strategy contract plus three reference strategies.

The references exist to exercise the harness end to end. They are not
meant to make money.
"""

from gauntlet.backtest.strategies.base import (
    DEFAULT_RISK_PROFILES,
    BaseStrategy,
    RiskProfile,
    Side,
    Signal,
    Strategy,
    StrategyCategory,
    StrategyMetadata,
    SuggestedSLTP,
    calculate_sltp,
    risk_profile_for,
)
from gauntlet.backtest.strategies.breakout import BreakoutStrategy
from gauntlet.backtest.strategies.ma_crossover import MACrossoverStrategy
from gauntlet.backtest.strategies.rsi_reversion import RSIReversionStrategy

__all__ = [
    "DEFAULT_RISK_PROFILES",
    "BaseStrategy",
    "RiskProfile",
    "Side",
    "Signal",
    "Strategy",
    "StrategyCategory",
    "StrategyMetadata",
    "SuggestedSLTP",
    "calculate_sltp",
    "risk_profile_for",
    "BreakoutStrategy",
    "MACrossoverStrategy",
    "RSIReversionStrategy",
]
