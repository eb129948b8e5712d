"""gauntlet: run a trading rule through history and see if it survives.

Every strategy walks the same gauntlet:
candles in, signals out, trades closed, numbers judged.
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "DEFAULT_WARMUP",
]

__version__ = "1.0.0"

# Candles skipped before the first analyze() call.
DEFAULT_WARMUP = 50
