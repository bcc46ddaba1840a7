"""Convenience exports for the configuration package."""

from .constants import *  # noqa: F401,F403
from .loader import ConfigError, load_config, save_config
from .logging_conf import JSONFormatter, configure_logging
from .schemas import BootstrapConfig
from .settings import ENV_PREFIX, Settings, get_settings, reset_settings_cache

__all__ = [
    "BootstrapConfig",
    "ConfigError",
    "load_config",
    "save_config",
    "JSONFormatter",
    "configure_logging",
    "ENV_PREFIX",
    "Settings",
    "get_settings",
    "reset_settings_cache",
]
