from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from gauntlet.core.config import Config
from gauntlet.core.exceptions import ConfigError


def test_repo_defaults_match_builtin_defaults(test_config: Config) -> None:
    assert test_config.backtest.warmup == 50
    assert test_config.backtest.min_candles == 100
    assert test_config.gate.min_trades == 5
    assert test_config.gate.min_win_rate == 45.0
    assert test_config.gate.min_sharpe == 0.5
    assert test_config.scan.intervals == [15, 60]
    assert test_config.backtest.protective_exits is False
    assert (test_config.backtest.fee_bps, test_config.backtest.slippage_bps) == (0.0, 0.0)
    assert test_config.data.private_key_path == ""
    assert test_config.registry_path == test_config.data_dir / "winners.json"


def test_user_yaml_is_deep_merged(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    (cfg_dir / "default.yaml").write_text("gate:\n  min_trades: 5\n  min_sharpe: 0.5\n", encoding="utf-8")
    (cfg_dir / "user.yaml").write_text("gate:\n  min_sharpe: 1.0\n", encoding="utf-8")

    cfg = Config.from_yaml(cfg_dir / "default.yaml")
    assert cfg.gate.min_sharpe == 1.0
    assert cfg.gate.min_trades == 5


def test_config_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GAUNTLET_BACKTEST__WARMUP", "20")
    cfg = Config()  # BaseSettings reads env
    assert cfg.backtest.warmup == 20


def test_config_from_yaml_raises_if_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config.from_yaml(tmp_path / "missing.yaml")


def test_config_rejects_bad_yaml_and_bad_values(tmp_path: Path) -> None:
    p = tmp_path / "default.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.from_yaml(p)

    p.write_text("backtest:\n  warmup: -1\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        Config.from_yaml(p)

    p.write_text("scan:\n  intervals: [15, 0]\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        Config.from_yaml(p)

    p.write_text("backtest:\n  fee_bps: -1\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        Config.from_yaml(p)


def test_discover_without_repo_config(tmp_path: Path) -> None:
    cfg = Config.discover(tmp_path)
    assert cfg.backtest.candle_count == 500
