"""Configuration module for perftrend."""

from .settings import Settings, settings, get_logging_config, setup_logging

__all__ = ["Settings", "settings", "get_logging_config", "setup_logging"]
