"""gauntlet.backtest.io

Lightweight IO helpers for backtesting.

CSV schema:
- required: close
- optional: start, open, high, low, volume

`start` may be epoch milliseconds or an ISO-8601 timestamp. Missing OHLC
columns fall back to close, missing volume to 0, missing start to the row
number. Rows are taken in file order; ordering is the file's responsibility.
"""

from __future__ import annotations

import csv
from pathlib import Path

import numpy as np

from gauntlet.backtest.candles import Candle, CandleSeries
from gauntlet.core.time import datetime_to_ms, parse_dt


def _start_ms(value: str, row_no: int) -> int:
    if value == "":
        return row_no
    try:
        return int(float(value))
    except ValueError:
        return datetime_to_ms(parse_dt(value))


def load_candles_csv(path: str | Path) -> CandleSeries:
    p = Path(path)
    rows: list[dict[str, str]] = []
    with p.open("r", encoding="utf-8", newline="") as f:
        r = csv.DictReader(f)
        for row in r:
            rows.append({k.strip().lower(): (v.strip() if isinstance(v, str) else "") for k, v in row.items() if k is not None})

    if not rows:
        return CandleSeries()
    if "close" not in rows[0]:
        raise ValueError("CSV missing required column: close")

    def num(row: dict[str, str], name: str, default: float) -> float:
        v = row.get(name, "")
        if v is None or v == "":
            return default
        return float(v)

    out: list[Candle] = []
    for i, row in enumerate(rows):
        close = num(row, "close", float("nan"))
        if not np.isfinite(close):
            raise ValueError(f"CSV row {i + 1}: close is missing or not finite")
        open_ = num(row, "open", close)
        out.append(
            Candle(
                start=_start_ms(row.get("start", "") or "", i),
                open=open_,
                high=num(row, "high", max(open_, close)),
                low=num(row, "low", min(open_, close)),
                close=close,
                volume=num(row, "volume", 0.0),
            )
        )
    return CandleSeries(out)


def write_candles_csv(path: str | Path, candles: CandleSeries) -> Path:
    """Snapshot a series to disk in the schema `load_candles_csv` reads."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["start", "open", "high", "low", "close", "volume"])
        for c in candles:
            w.writerow([c.start, repr(c.open), repr(c.high), repr(c.low), repr(c.close), repr(c.volume)])
    return p
