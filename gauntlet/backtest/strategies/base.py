"""gauntlet.backtest.strategies.base

Backtest strategy contract.

A strategy is anything that can look at the candles seen so far and answer
buy, sell or hold. The simulator turns those answers into trades.

Contract (structural, no inheritance required):
- id, name, description, category
- analyze(view) -> Signal            (sync or async)
- get_metadata() -> StrategyMetadata
- get_risk_profile() -> RiskProfile
- get_suggested_sltp(price, atr, side) -> SuggestedSLTP
- initialize(series)                  (optional; sync or async)

`BaseStrategy` supplies the boring parts (category risk lookup, default
metadata, ATR-based SL/TP). Use it or don't.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gauntlet.backtest.candles import CandleView


class Signal(StrEnum):
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class Side(StrEnum):
    LONG = "long"
    SHORT = "short"


class StrategyCategory(StrEnum):
    MOMENTUM = "momentum"
    TREND = "trend"
    MEAN_REVERSION = "mean_reversion"
    SCALPING = "scalping"
    COMPOSITE = "composite"


@dataclass(frozen=True, slots=True)
class RiskProfile:
    """Bounds for turning ATR into stop-loss / take-profit distances (percent of price)."""

    atr_multiplier_sl: float
    atr_multiplier_tp: float
    min_sl_percent: float
    max_sl_percent: float
    min_tp_percent: float
    max_tp_percent: float


@dataclass(frozen=True, slots=True)
class StrategyMetadata:
    """Advisory only. The simulator does not enforce any of it."""

    min_data_points: int = 100
    preferred_intervals: tuple[int, ...] = (15, 60, 240)
    suitable_market_conditions: tuple[str, ...] = ("trending", "volatile")
    complexity: Literal["simple", "moderate", "complex"] = "moderate"
    author: str | None = None
    version: str | None = None
    created_at: str | None = None


@dataclass(frozen=True, slots=True)
class SuggestedSLTP:
    stop_loss: float  # price level
    take_profit: float  # price level


DEFAULT_RISK_PROFILES: Final[dict[StrategyCategory, RiskProfile]] = {
    StrategyCategory.SCALPING: RiskProfile(
        atr_multiplier_sl=1.0,
        atr_multiplier_tp=1.5,
        min_sl_percent=0.5,
        max_sl_percent=2.0,
        min_tp_percent=0.8,
        max_tp_percent=3.0,
    ),
    StrategyCategory.TREND: RiskProfile(
        atr_multiplier_sl=2.0,
        atr_multiplier_tp=4.0,
        min_sl_percent=2.0,
        max_sl_percent=8.0,
        min_tp_percent=4.0,
        max_tp_percent=20.0,
    ),
    StrategyCategory.MEAN_REVERSION: RiskProfile(
        atr_multiplier_sl=1.5,
        atr_multiplier_tp=2.0,
        min_sl_percent=1.0,
        max_sl_percent=4.0,
        min_tp_percent=1.5,
        max_tp_percent=6.0,
    ),
    StrategyCategory.MOMENTUM: RiskProfile(
        atr_multiplier_sl=1.5,
        atr_multiplier_tp=3.0,
        min_sl_percent=1.5,
        max_sl_percent=5.0,
        min_tp_percent=3.0,
        max_tp_percent=12.0,
    ),
    StrategyCategory.COMPOSITE: RiskProfile(
        atr_multiplier_sl=1.8,
        atr_multiplier_tp=3.5,
        min_sl_percent=1.5,
        max_sl_percent=6.0,
        min_tp_percent=3.0,
        max_tp_percent=15.0,
    ),
}


def risk_profile_for(category: StrategyCategory | str) -> RiskProfile:
    """Category default; unknown categories get the momentum profile."""

    try:
        return DEFAULT_RISK_PROFILES[StrategyCategory(category)]
    except ValueError:
        return DEFAULT_RISK_PROFILES[StrategyCategory.MOMENTUM]


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def calculate_sltp(price: float, atr: float, side: Side | str, profile: RiskProfile) -> SuggestedSLTP:
    """ATR -> percent of price -> multiplied -> clamped -> projected onto price.

    Long: stop below, target above. Short: inverted.
    """

    atr_pct = (float(atr) / float(price)) * 100.0
    sl_pct = _clamp(atr_pct * profile.atr_multiplier_sl, profile.min_sl_percent, profile.max_sl_percent)
    tp_pct = _clamp(atr_pct * profile.atr_multiplier_tp, profile.min_tp_percent, profile.max_tp_percent)

    if Side(side) is Side.LONG:
        return SuggestedSLTP(stop_loss=price * (1.0 - sl_pct / 100.0), take_profit=price * (1.0 + tp_pct / 100.0))
    return SuggestedSLTP(stop_loss=price * (1.0 + sl_pct / 100.0), take_profit=price * (1.0 - tp_pct / 100.0))


@runtime_checkable
class Strategy(Protocol):
    id: str
    name: str
    description: str
    category: StrategyCategory | str

    def analyze(self, candles: CandleView) -> Signal | str | Awaitable[Signal | str]: ...

    def get_metadata(self) -> StrategyMetadata: ...

    def get_risk_profile(self) -> RiskProfile: ...

    def get_suggested_sltp(self, price: float, atr: float, side: Side | str) -> SuggestedSLTP: ...


class BaseStrategy(ABC):
    """Default-behavior adapter.

    Subclasses implement:
    - analyze()

    and inherit:
    - get_metadata() (generic defaults)
    - get_risk_profile() (`risk_profile` override, else category table)
    - get_suggested_sltp() (calculate_sltp over the risk profile)
    """

    id: str = "strategy"
    name: str = "Strategy"
    description: str = ""
    category: StrategyCategory = StrategyCategory.MOMENTUM
    risk_profile: RiskProfile | None = None

    @abstractmethod
    def analyze(self, candles: CandleView) -> Signal | Awaitable[Signal]:
        raise NotImplementedError

    def get_metadata(self) -> StrategyMetadata:
        return StrategyMetadata()

    def get_risk_profile(self) -> RiskProfile:
        if self.risk_profile is not None:
            return self.risk_profile
        return risk_profile_for(self.category)

    def get_suggested_sltp(self, price: float, atr: float, side: Side | str) -> SuggestedSLTP:
        return calculate_sltp(price, atr, side, self.get_risk_profile())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


def coerce_signal(value: object) -> Signal:
    """Accept a Signal or its string value; anything else is a contract violation."""

    if isinstance(value, Signal):
        return value
    if isinstance(value, str):
        return Signal(value.strip().lower())
    raise ValueError(f"strategy returned a non-signal value: {value!r}")
