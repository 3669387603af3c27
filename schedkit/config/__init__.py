"""Configuration module."""

from schedkit.config.schema import Config
from schedkit.config.loader import load_config, resolve_config_path, save_default_config

__all__ = ["Config", "load_config", "resolve_config_path", "save_default_config"]
