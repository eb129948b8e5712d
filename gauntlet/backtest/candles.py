"""gauntlet.backtest.candles

Candle series + bounded prefix views.

A strategy never sees a CandleSeries during the walk. It sees a CandleView:
the candles up to and including the current step, and nothing past it.
Column arrays handed out by a view are copies, so there is no underlying
buffer to index beyond the bound.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import overload

import numpy as np

from gauntlet.core.time import ms_to_datetime


@dataclass(frozen=True, slots=True)
class Candle:
    start: int  # epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def start_dt(self) -> datetime:
        return ms_to_datetime(self.start)


def _column(candles: Sequence[Candle], attr: str) -> np.ndarray:
    arr = np.array([float(getattr(c, attr)) for c in candles], dtype=np.float64)
    arr.setflags(write=False)
    return arr


class CandleSeries(Sequence[Candle]):
    """Immutable, fully materialized candle history for one symbol/interval."""

    __slots__ = ("_candles", "_cols")

    def __init__(self, candles: Iterable[Candle] = ()) -> None:
        self._candles: tuple[Candle, ...] = tuple(candles)
        self._cols: dict[str, np.ndarray] = {
            name: _column(self._candles, name) for name in ("start", "open", "high", "low", "close", "volume")
        }

    @classmethod
    def from_arrays(
        cls,
        *,
        close: Sequence[float] | np.ndarray,
        open: Sequence[float] | np.ndarray | None = None,
        high: Sequence[float] | np.ndarray | None = None,
        low: Sequence[float] | np.ndarray | None = None,
        volume: Sequence[float] | np.ndarray | None = None,
        start: Sequence[int] | np.ndarray | None = None,
    ) -> CandleSeries:
        """Build a series from column arrays; missing OHLC columns fall back to close."""

        c = np.asarray(close, dtype=np.float64)
        n = c.shape[0]

        def col(x, default: np.ndarray) -> np.ndarray:
            if x is None:
                return default
            arr = np.asarray(x, dtype=np.float64)
            if arr.shape[0] != n:
                raise ValueError("all candle columns must have the same length")
            return arr

        o = col(open, c)
        h = col(high, np.maximum(o, c))
        lo = col(low, np.minimum(o, c))
        v = col(volume, np.zeros(n, dtype=np.float64))
        s = col(start, np.arange(n, dtype=np.float64))
        return cls(
            Candle(start=int(s[i]), open=float(o[i]), high=float(h[i]), low=float(lo[i]), close=float(c[i]), volume=float(v[i]))
            for i in range(n)
        )

    def __len__(self) -> int:
        return len(self._candles)

    @overload
    def __getitem__(self, index: int) -> Candle: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Candle, ...]: ...

    def __getitem__(self, index):
        return self._candles[index]

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    def __repr__(self) -> str:
        return f"CandleSeries(len={len(self)})"

    @property
    def last(self) -> Candle:
        return self._candles[-1]

    def column(self, name: str) -> np.ndarray:
        """Read-only column array (start/open/high/low/close/volume)."""

        return self._cols[name]

    @property
    def close(self) -> np.ndarray:
        return self._cols["close"]

    @property
    def high(self) -> np.ndarray:
        return self._cols["high"]

    @property
    def low(self) -> np.ndarray:
        return self._cols["low"]

    def tail(self, count: int) -> CandleSeries:
        """Most recent `count` candles as a new series."""

        if count <= 0:
            return CandleSeries()
        return CandleSeries(self._candles[-count:])

    def prefix(self, end: int) -> CandleView:
        """View of candles [0, end). `end` is clamped to the series length."""

        end = max(0, min(int(end), len(self._candles)))
        return CandleView(self._candles[:end], {name: col[:end] for name, col in self._cols.items()})


class CandleView(Sequence[Candle]):
    """Read-only window over the first `len(view)` candles of a series.

    Holds only its own candles and column copies; nothing past the bound is
    reachable from it.
    """

    __slots__ = ("_candles", "_cols")

    def __init__(self, candles: tuple[Candle, ...], cols: dict[str, np.ndarray]) -> None:
        self._candles = candles
        self._cols: dict[str, np.ndarray] = {}
        for name, col in cols.items():
            out = np.array(col[: len(candles)], dtype=np.float64)
            out.setflags(write=False)
            self._cols[name] = out

    def __len__(self) -> int:
        return len(self._candles)

    @overload
    def __getitem__(self, index: int) -> Candle: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Candle, ...]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self._candles[index]
        try:
            return self._candles[int(index)]
        except IndexError:
            raise IndexError("candle index out of view") from None

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    def __repr__(self) -> str:
        return f"CandleView(len={len(self._candles)})"

    @property
    def last(self) -> Candle:
        if not self._candles:
            raise IndexError("empty candle view")
        return self._candles[-1]

    def column(self, name: str) -> np.ndarray:
        return self._cols[name]

    @property
    def start(self) -> np.ndarray:
        return self.column("start")

    @property
    def open(self) -> np.ndarray:
        return self.column("open")

    @property
    def high(self) -> np.ndarray:
        return self.column("high")

    @property
    def low(self) -> np.ndarray:
        return self.column("low")

    @property
    def close(self) -> np.ndarray:
        return self.column("close")

    @property
    def volume(self) -> np.ndarray:
        return self.column("volume")
