"""Configuration management for resultcheck."""

from resultcheck.config.settings import CONFIG_FILENAME, ResultcheckConfig, load_config

__all__ = [
    "CONFIG_FILENAME",
    "ResultcheckConfig",
    "load_config",
]
