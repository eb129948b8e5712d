"""gauntlet.backtest.indicators

Indicator primitives for strategies.

Every function maps arrays to a float64 array of the same length and uses NaN
while the indicator is still warming up. Strategies treat NaN as "not ready"
and answer hold; the simulator never calls these directly.
"""

from __future__ import annotations

import numpy as np


def sma(x: np.ndarray, n: int) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    out = np.full_like(x, np.nan, dtype=np.float64)
    if n <= 0 or x.size < n:
        return out
    if n == 1:
        return x.copy()

    csum = np.cumsum(x, dtype=np.float64)
    # rolling sum for windows ending at i (inclusive): sum[x[i-n+1:i+1]]
    roll_sum = csum[n - 1 :].copy()
    roll_sum[1:] = roll_sum[1:] - csum[:-n]
    out[n - 1 :] = roll_sum / float(n)
    return out


def ema(x: np.ndarray, n: int) -> np.ndarray:
    """EMA seeded with the SMA of the first n values (first value at index n-1)."""

    x = np.asarray(x, dtype=np.float64)
    out = np.full_like(x, np.nan, dtype=np.float64)
    if n <= 0 or x.size < n:
        return out

    alpha = 2.0 / (n + 1.0)
    prev = float(np.mean(x[:n]))
    out[n - 1] = prev
    for i in range(n, x.size):
        prev = (x[i] - prev) * alpha + prev
        out[i] = prev
    return out


def rsi(close: np.ndarray, n: int = 14) -> np.ndarray:
    """Windowed RSI: plain average gain/loss over the last n changes.

    No Wilder smoothing, so a value only depends on the last n+1 closes.
    A window with no losses maps to RS=100 (RSI ~ 99.01).
    """

    close = np.asarray(close, dtype=np.float64)
    out = np.full_like(close, np.nan, dtype=np.float64)
    if n <= 0 or close.size <= n:
        return out

    diff = np.diff(close)
    gains = np.maximum(diff, 0.0)
    losses = np.maximum(-diff, 0.0)

    # diff[j] is the change into close[j + 1]
    avg_gain = sma(gains, n)
    avg_loss = sma(losses, n)
    for j in range(n - 1, diff.size):
        g = avg_gain[j]
        lo = avg_loss[j]
        rs = 100.0 if lo == 0.0 else g / lo
        out[j + 1] = 100.0 - 100.0 / (1.0 + rs)
    return out


def true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    high = np.asarray(high, dtype=np.float64)
    low = np.asarray(low, dtype=np.float64)
    close = np.asarray(close, dtype=np.float64)
    if high.size == 0:
        return np.zeros(0, dtype=np.float64)

    tr = high - low
    prev_close = close[:-1]
    tr[1:] = np.maximum.reduce([tr[1:], np.abs(high[1:] - prev_close), np.abs(low[1:] - prev_close)])
    return tr


def atr(high: np.ndarray, low: np.ndarray, close: np.ndarray, n: int = 14) -> np.ndarray:
    """Average True Range (EMA of the true range)."""

    return ema(true_range(high, low, close), n)


def rolling_max(x: np.ndarray, n: int) -> np.ndarray:
    """Max of the previous n values, excluding the current bar."""

    x = np.asarray(x, dtype=np.float64)
    out = np.full_like(x, np.nan, dtype=np.float64)
    if n <= 0:
        return out
    for i in range(n, x.size):
        out[i] = float(np.max(x[i - n : i]))
    return out


def rolling_min(x: np.ndarray, n: int) -> np.ndarray:
    """Min of the previous n values, excluding the current bar."""

    x = np.asarray(x, dtype=np.float64)
    out = np.full_like(x, np.nan, dtype=np.float64)
    if n <= 0:
        return out
    for i in range(n, x.size):
        out[i] = float(np.min(x[i - n : i]))
    return out
