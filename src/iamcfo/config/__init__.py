"""Configuration module for I AM CFO."""

from iamcfo.config.logging import configure_logging, get_logger
from iamcfo.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging", "get_logger"]
