from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
import pytest

# uv/pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from gauntlet.backtest.candles import CandleSeries, CandleView  # noqa: E402
from gauntlet.backtest.strategies.base import BaseStrategy, Signal  # noqa: E402
from gauntlet.core.config import Config  # noqa: E402


class ScriptedStrategy(BaseStrategy):
    """Replays a fixed signal per bar index; records what it was shown."""

    id = "test/scripted"
    name = "Scripted"

    def __init__(self, signals: Sequence[str], *, default: str = "hold") -> None:
        self.signals = [Signal(s) for s in signals]
        self.default = Signal(default)
        self.seen_lengths: list[int] = []

    def analyze(self, candles: CandleView) -> Signal:
        n = len(candles)
        self.seen_lengths.append(n)
        i = n - 1
        return self.signals[i] if i < len(self.signals) else self.default


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config fixture that points data_dir to a temp directory."""

    c = Config.from_yaml(REPO_ROOT / "config" / "default.yaml")
    return c.model_copy(update={"data_dir": temp_dir / "data", "config_dir": REPO_ROOT / "config"})


@pytest.fixture()
def make_series() -> Callable[..., CandleSeries]:
    def _make(close: Sequence[float], **cols) -> CandleSeries:
        return CandleSeries.from_arrays(close=close, **cols)

    return _make


@pytest.fixture()
def scripted() -> Callable[..., ScriptedStrategy]:
    return ScriptedStrategy


@pytest.fixture()
def random_walk() -> CandleSeries:
    rng = np.random.default_rng(7)
    close = 100.0 + np.cumsum(rng.normal(0, 1.0, size=400))
    spread = np.abs(rng.normal(0, 0.5, size=400))
    start = 1_700_000_000_000 + np.arange(400) * 60_000
    return CandleSeries.from_arrays(
        close=close,
        open=np.concatenate([[close[0]], close[:-1]]),
        high=close + spread,
        low=close - spread,
        volume=np.full(400, 10.0),
        start=start,
    )


@pytest.fixture()
def anyio_backend() -> str:
    # The HTTP client is built on asyncio; don't parametrize over other installed backends.
    return "asyncio"
