"""Tests for configuration loading."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from spiral.config import load_config


def _write_settings(path: Path, body: str) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    (path / "settings.yaml").write_text(body, encoding="utf-8")
    return path


def test_bundled_settings_load(monkeypatch):
    for name in ("SPIRAL_SEED", "SPIRAL_TIME_SCALE", "SPIRAL_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_config()
    assert cfg["session"]["mode"] == "infinite_spiral"
    assert cfg["scheduler"]["narrator_periods"]["unhinged"] == 20
    assert cfg["narrative"]["phase_thresholds"]["mirror-confrontation"] == 18


def test_missing_settings_raise(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path)


def test_empty_settings_give_empty_sections(tmp_path: Path, monkeypatch):
    for name in ("SPIRAL_SEED", "SPIRAL_TIME_SCALE", "SPIRAL_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_config(_write_settings(tmp_path, ""))
    assert cfg["session"] == {}
    assert cfg["_env"] == {"seed": "", "time_scale": "", "log_file": ""}


def test_environment_overrides_file(tmp_path: Path, monkeypatch):
    config_dir = _write_settings(tmp_path, "session:\n  seed: 1\n  time_scale: 1.0\n")
    monkeypatch.setenv("SPIRAL_SEED", "42")
    monkeypatch.setenv("SPIRAL_TIME_SCALE", "0.5")
    monkeypatch.setenv("SPIRAL_LOG_FILE", "spiral.log")
    cfg = load_config(config_dir)
    assert cfg["session"]["seed"] == "42"
    assert cfg["session"]["time_scale"] == 0.5
    assert cfg["storage"]["log_file"] == "spiral.log"


def test_bad_time_scale_is_ignored(tmp_path: Path, monkeypatch):
    config_dir = _write_settings(tmp_path, "session:\n  time_scale: 2.0\n")
    monkeypatch.delenv("SPIRAL_SEED", raising=False)
    monkeypatch.setenv("SPIRAL_TIME_SCALE", "fast")
    cfg = load_config(config_dir)
    assert cfg["session"]["time_scale"] == 2.0


def test_dotenv_file_is_read(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("SPIRAL_SEED", raising=False)
    config_dir = _write_settings(tmp_path, "session: {}\n")
    (config_dir / ".env").write_text("SPIRAL_SEED=7\n", encoding="utf-8")
    try:
        cfg = load_config(config_dir)
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("SPIRAL_SEED", None)
    assert cfg["session"]["seed"] == "7"
