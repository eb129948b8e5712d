"""gauntlet.core.config

Two config surfaces only:
1) `config/default.yaml`, optionally overlaid by `config/user.yaml`
2) Environment variables (`GAUNTLET_` prefix, `__` for nesting)

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from gauntlet.core.exceptions import ConfigError


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {path} ({e})") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return raw


class BacktestSettings(BaseModel):
    warmup: int = 50
    initial_equity: float = 100.0
    min_candles: int = 100
    candle_count: int = 500
    protective_exits: bool = False
    atr_period: int = 14
    fee_bps: float = 0.0
    slippage_bps: float = 0.0

    @field_validator("warmup")
    @classmethod
    def warmup_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("warmup must be >= 0")
        return v

    @field_validator("initial_equity")
    @classmethod
    def equity_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("initial_equity must be > 0")
        return v

    @field_validator("atr_period")
    @classmethod
    def atr_period_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("atr_period must be > 0")
        return v

    @field_validator("fee_bps", "slippage_bps")
    @classmethod
    def costs_not_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("fees and slippage must be >= 0")
        return v


class GateSettings(BaseModel):
    """Minimum bar a strategy has to clear to be registered."""

    min_trades: int = 5
    min_win_rate: float = 45.0
    min_total_pnl_percent: float = 0.0
    min_sharpe: float = 0.5


class DataSettings(BaseModel):
    base_url: str = "https://revx.revolut.com/api/1.0"
    api_key: str = ""
    private_key_path: str = ""
    rate_limit_rps: float = 5.0
    max_retries: int = 3
    timeout_s: float = 20.0


class ScanSettings(BaseModel):
    intervals: list[int] = [15, 60]

    @field_validator("intervals")
    @classmethod
    def intervals_positive(cls, v: list[int]) -> list[int]:
        if any(i <= 0 for i in v):
            raise ValueError("scan intervals must be positive minutes")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    # Paths
    data_dir: Path = Path("data")
    config_dir: Path = Path("config")
    strategies_dir: Path = Path("strategies")
    registry_file: str = "winners.json"

    # Component configs
    backtest: BacktestSettings = Field(default_factory=BacktestSettings)
    gate: GateSettings = Field(default_factory=GateSettings)
    data: DataSettings = Field(default_factory=DataSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_prefix": "GAUNTLET_", "env_nested_delimiter": "__"}

    @property
    def registry_path(self) -> Path:
        return self.data_dir / self.registry_file

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        raw = _read_yaml(path)

        # Local overrides live next to the defaults and are never committed.
        user = path.parent / "user.yaml"
        if user.exists() and user != path:
            raw = _deep_merge(raw, _read_yaml(user))

        return cls(**raw)

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml")

    @classmethod
    def discover(cls, repo_root: Path | None = None) -> Config:
        """Repo defaults when present, otherwise built-in defaults + env."""

        root = repo_root or Path.cwd()
        if (root / "config" / "default.yaml").exists():
            return cls.from_repo_defaults(root)
        return cls()
