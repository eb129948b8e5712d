"""gauntlet.core.exceptions

Errors are part of the interface.
"""

from __future__ import annotations


class GauntletError(Exception):
    """Base exception for gauntlet."""


class ConfigError(GauntletError):
    """Configuration file is missing or holds invalid values."""


class StrategyError(GauntletError):
    """Strategy contract violated or strategy failed during setup."""


class StrategyLoadError(StrategyError):
    """Strategy file could not be imported or does not satisfy the contract."""


class DataSourceError(GauntletError):
    """Candle retrieval failed (network error, bad payload or missing file)."""


class InsufficientDataError(DataSourceError):
    """Fewer candles than a meaningful backtest needs."""


class RegistryError(GauntletError):
    """Winners registry could not be read or written."""
