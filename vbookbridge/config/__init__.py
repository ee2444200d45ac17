"""Configuration module for vbookbridge."""

from vbookbridge.config.loader import load_config, get_config_path
from vbookbridge.config.schema import Config
from vbookbridge.config.access import get_config, clear_config_cache

__all__ = ["Config", "load_config", "get_config_path", "get_config", "clear_config_cache"]
