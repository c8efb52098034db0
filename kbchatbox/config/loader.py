"""Configuration loading utilities."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from loguru import logger
from pydantic import ValidationError

from kbchatbox.config.schema import Config

ENV_PREFIX = "KBCHAT_"
HOME_ENV = "KBCHATBOX_HOME"


def get_config_dir() -> Path:
    """Get the kbchatbox configuration directory ($KBCHATBOX_HOME or ~/.kbchatbox)."""
    home = os.environ.get(HOME_ENV)
    if home:
        return Path(home).expanduser()
    return Path.home() / ".kbchatbox"


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return get_config_dir() / "config.json"


def env_overrides(environ: Mapping[str, str] | None = None) -> list[str]:
    """Names of the KBCHAT_* variables that take precedence over the config file."""
    environ = os.environ if environ is None else environ
    return sorted(name for name in environ if name.upper().startswith(ENV_PREFIX))


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug("No config file at {}, using defaults", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to read config from {}: {}", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config {}: expected a JSON object", path)
        return {}
    logger.debug("Loaded config from {}", path)
    return data


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file, with KBCHAT_* environment variables on top.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object. An unreadable or invalid file is
        replaced by the defaults; environment overrides still apply.
    """
    path = config_path or get_config_path()
    data = _read_file(path)

    try:
        config = Config(**data)
    except ValidationError as e:
        logger.warning("Invalid config in {}: {}", path, e)
        logger.warning("Using default configuration.")
        config = Config()

    overrides = env_overrides()
    if overrides:
        logger.debug("Environment overrides: {}", ", ".join(overrides))
    return config


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write configuration as JSON and return the path written."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(config.model_dump(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path
