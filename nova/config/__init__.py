"""Configuration module for nova."""

from nova.config.loader import get_config_path, load_config
from nova.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
