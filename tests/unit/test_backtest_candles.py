from __future__ import annotations

import numpy as np
import pytest

from gauntlet.backtest.candles import Candle, CandleSeries


def test_from_arrays_fills_missing_columns():
    s = CandleSeries.from_arrays(close=[10.0, 12.0], open=[11.0, 11.0])
    assert s[0] == Candle(start=0, open=11.0, high=11.0, low=10.0, close=10.0, volume=0.0)
    assert s[1].high == 12.0 and s[1].low == 11.0
    assert s.last.start == 1


def test_from_arrays_rejects_ragged_columns():
    with pytest.raises(ValueError):
        CandleSeries.from_arrays(close=[1.0, 2.0], high=[1.0])


def test_columns_are_read_only():
    s = CandleSeries.from_arrays(close=[1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        s.close[0] = 99.0


def test_prefix_view_is_bounded():
    s = CandleSeries.from_arrays(close=[1.0, 2.0, 3.0, 4.0])
    v = s.prefix(2)
    assert len(v) == 2
    assert v.last.close == 2.0
    assert v[-1].close == 2.0
    assert [c.close for c in v[0:10]] == [1.0, 2.0]
    assert [c.close for c in v] == [1.0, 2.0]
    with pytest.raises(IndexError):
        v[2]
    with pytest.raises(IndexError):
        v[-3]
    assert len(s.prefix(99)) == 4
    with pytest.raises(IndexError):
        s.prefix(0).last


def test_tail():
    s = CandleSeries.from_arrays(close=[1.0, 2.0, 3.0])
    assert [c.close for c in s.tail(2)] == [2.0, 3.0]
    assert len(s.tail(0)) == 0
    assert len(s.tail(10)) == 3


def test_candle_start_dt_is_utc():
    c = Candle(start=1_704_067_200_000, open=1.0, high=1.0, low=1.0, close=1.0)
    assert c.start_dt.isoformat() == "2024-01-01T00:00:00+00:00"


def test_prefix_view_holds_nothing_past_its_bound():
    s = CandleSeries.from_arrays(close=[1.0, 2.0, 3.0, 4.0, 5.0])
    v = s.prefix(3)

    held = [getattr(v, slot) for slot in type(v).__slots__]
    assert not any(isinstance(x, CandleSeries) for x in held)
    assert len(v._candles) == 3
    assert all(len(col) == 3 for col in v._cols.values())
    assert v.close.tolist() == [1.0, 2.0, 3.0]
    assert not np.shares_memory(v.close, s.close)
    with pytest.raises(ValueError):
        v.close[0] = 99.0
