"""gauntlet.backtest

Backtest harness.

candles -> simulator -> validation -> gate -> registry.
The scan module runs the same pipeline over many symbols and intervals.
"""
