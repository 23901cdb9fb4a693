"""Configuration module for deskhost."""

from deskhost.config.loader import load_config, get_config_path
from deskhost.config.schema import Config
from deskhost.config.access import get_config, clear_config_cache

__all__ = ["Config", "load_config", "get_config_path", "get_config", "clear_config_cache"]
