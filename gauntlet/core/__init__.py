"""gauntlet.core

Core primitives: config, errors, logging, HTTP, time.

If a module needs to exist, it should probably depend only on this package.
"""

from .config import Config
from .exceptions import GauntletError
from .time import ms_to_datetime, parse_dt, utc_now

__all__ = [
    "Config",
    "GauntletError",
    "ms_to_datetime",
    "parse_dt",
    "utc_now",
]
