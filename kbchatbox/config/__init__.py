"""Configuration for kbchatbox."""

from kbchatbox.config.loader import get_config_path, load_config, save_config
from kbchatbox.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_config"]
