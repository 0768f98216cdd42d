"""Configuration loading from settings.yaml and .env."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_config(
    config_dir: str | Path | None = None,
) -> dict:
    """Load settings.yaml and .env, return merged config dict."""
    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent / "config"
    config_dir = Path(config_dir)

    # Load .env (silently skip if missing)
    env_path = config_dir / ".env"
    load_dotenv(env_path)

    settings_path = config_dir / "settings.yaml"
    if not settings_path.exists():
        raise FileNotFoundError(f"Config not found: {settings_path}")

    with open(settings_path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    cfg["_env"] = {
        "seed": os.getenv("SPIRAL_SEED", ""),
        "time_scale": os.getenv("SPIRAL_TIME_SCALE", ""),
        "log_file": os.getenv("SPIRAL_LOG_FILE", ""),
    }

    # Env values win over the file when present
    session = cfg.setdefault("session", {})
    if cfg["_env"]["seed"]:
        session["seed"] = cfg["_env"]["seed"]
    if cfg["_env"]["time_scale"]:
        try:
            session["time_scale"] = float(cfg["_env"]["time_scale"])
        except ValueError:
            logger.warning("Ignoring SPIRAL_TIME_SCALE=%r, not a number", cfg["_env"]["time_scale"])
    if cfg["_env"]["log_file"]:
        cfg.setdefault("storage", {})["log_file"] = cfg["_env"]["log_file"]

    return cfg
