"""gauntlet.core.logging

Logging setup. Modules log snake_case events with `extra={...}` context;
this module decides how those records look on the way out.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from gauntlet.core.config import LoggingConfig
from gauntlet.core.time import utc_now

# Attributes every LogRecord carries; anything else arrived through `extra`.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS and not k.startswith("_")}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, extra fields included."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human format: `LEVEL logger: event key=value ...`."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname} {record.name}: {record.getMessage()}"
        extras = _extra_fields(record)
        if extras:
            base += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(cfg: LoggingConfig | None = None, *, stream: Any = None) -> logging.Logger:
    """Install a single handler on the `gauntlet` logger.

    Idempotent: repeated calls replace the handler rather than stacking them.
    """

    cfg = cfg or LoggingConfig()
    logger = logging.getLogger("gauntlet")
    level = logging.getLevelName(cfg.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)

    for h in list(logger.handlers):
        if getattr(h, "_gauntlet_handler", False):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if cfg.json_output else KeyValueFormatter())
    handler._gauntlet_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
