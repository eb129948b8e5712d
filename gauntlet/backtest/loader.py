"""gauntlet.backtest.loader

Load a strategy from a file or a module path.

Accepted references:
- `path/to/file.py` (absolute, relative to cwd, or relative to strategies_dir)
- `package.module` or `package.module:attribute`

A module exposes its strategy as `strategy` (an instance, or a class that
takes no arguments). Whatever comes back must have an `id` and a callable
`analyze`; nothing else is checked up front.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

from gauntlet.backtest.strategies.base import Strategy
from gauntlet.core.exceptions import StrategyLoadError

logger = logging.getLogger(__name__)

DEFAULT_ATTR = "strategy"


def _resolve_path(ref: str, strategies_dir: Path | None) -> Path | None:
    candidates = [Path(ref)]
    if strategies_dir is not None:
        candidates.append(Path(strategies_dir) / ref)
    for c in candidates:
        if c.is_file():
            return c.resolve()
    return None


def _import_file(path: Path) -> ModuleType:
    # Unique per path so two files called `momentum.py` do not collide.
    digest = hashlib.sha256(str(path).encode("utf-8")).hexdigest()[:12]
    mod_name = f"gauntlet_user_strategy_{path.stem}_{digest}"
    spec = importlib.util.spec_from_file_location(mod_name, path)
    if spec is None or spec.loader is None:
        raise StrategyLoadError(f"not an importable python file: {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[mod_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(mod_name, None)
        raise StrategyLoadError(f"failed to import {path}: {type(e).__name__}: {e}") from e
    return module


def _import_dotted(ref: str) -> tuple[ModuleType, str]:
    mod_path, _, attr = ref.partition(":")
    try:
        module = importlib.import_module(mod_path)
    except Exception as e:
        raise StrategyLoadError(f"failed to import {mod_path}: {type(e).__name__}: {e}") from e
    return module, attr or DEFAULT_ATTR


def _instantiate(obj: Any, ref: str) -> Any:
    if isinstance(obj, type):
        try:
            return obj()
        except Exception as e:
            raise StrategyLoadError(f"could not instantiate strategy class from {ref}: {e}") from e
    return obj


def validate_strategy(obj: Any, *, ref: str = "<strategy>") -> Strategy:
    sid = getattr(obj, "id", None)
    if not isinstance(sid, str) or not sid.strip():
        raise StrategyLoadError(f"{ref}: strategy must define a non-empty string `id`")
    if not callable(getattr(obj, "analyze", None)):
        raise StrategyLoadError(f"{ref}: strategy must define a callable `analyze()`")
    return obj


def load_strategy(ref: str, *, strategies_dir: Path | None = None) -> Strategy:
    path = _resolve_path(ref, strategies_dir) if ref.endswith(".py") else None

    if path is not None:
        module = _import_file(path)
        attr = DEFAULT_ATTR
    elif ref.endswith(".py") or "/" in ref or "\\" in ref:
        raise StrategyLoadError(f"strategy file not found: {ref}")
    else:
        module, attr = _import_dotted(ref)

    if not hasattr(module, attr):
        raise StrategyLoadError(f"{ref}: module has no `{attr}` attribute")

    strategy = validate_strategy(_instantiate(getattr(module, attr), ref), ref=ref)
    logger.info("strategy_loaded", extra={"ref": ref, "strategy": strategy.id})
    return strategy
