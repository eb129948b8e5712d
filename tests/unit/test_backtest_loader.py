from __future__ import annotations

from pathlib import Path

import pytest

from gauntlet.backtest.loader import load_strategy, validate_strategy
from gauntlet.backtest.strategies.rsi_reversion import RSIReversionStrategy
from gauntlet.core.exceptions import StrategyError, StrategyLoadError

STRATEGY_FILE = """
from gauntlet.backtest.strategies.base import BaseStrategy, Signal


class Always(BaseStrategy):
    id = "test/always-buy"
    name = "Always Buy"

    def analyze(self, candles):
        return Signal.BUY


strategy = Always
"""


def test_load_from_file_instantiates_class(tmp_path: Path):
    p = tmp_path / "always.py"
    p.write_text(STRATEGY_FILE, encoding="utf-8")
    s = load_strategy(str(p))
    assert s.id == "test/always-buy"


def test_load_falls_back_to_strategies_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    sdir = tmp_path / "strategies"
    sdir.mkdir()
    (sdir / "always.py").write_text(STRATEGY_FILE, encoding="utf-8")
    monkeypatch.chdir(tmp_path / "..")
    assert load_strategy("always.py", strategies_dir=sdir).id == "test/always-buy"


def test_load_dotted_module_reference():
    s = load_strategy("gauntlet.backtest.strategies.rsi_reversion")
    assert isinstance(s, RSIReversionStrategy)

    s = load_strategy("gauntlet.backtest.strategies.breakout:BreakoutStrategy")
    assert s.id == "trend/channel-breakout-v1"


@pytest.mark.parametrize(
    "ref, message",
    [
        ("nowhere/missing.py", "not found"),
        ("missing.py", "not found"),
        ("gauntlet.no_such_module", "failed to import"),
        ("gauntlet.backtest.strategies.breakout:Nope", "no `Nope`"),
    ],
)
def test_load_failures_raise_strategy_load_error(ref: str, message: str):
    with pytest.raises(StrategyLoadError, match=message):
        load_strategy(ref)


def test_load_file_with_syntax_error(tmp_path: Path):
    p = tmp_path / "broken.py"
    p.write_text("def analyze(:\n", encoding="utf-8")
    with pytest.raises(StrategyLoadError, match="SyntaxError"):
        load_strategy(str(p))


def test_validate_strategy_contract():
    class NoId:
        def analyze(self, candles):
            return "hold"

    class NoAnalyze:
        id = "x"

    with pytest.raises(StrategyLoadError, match="id"):
        validate_strategy(NoId())
    with pytest.raises(StrategyLoadError, match="analyze"):
        validate_strategy(NoAnalyze())
    assert issubclass(StrategyLoadError, StrategyError)
