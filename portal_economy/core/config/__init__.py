"""
Configuration subsystem.

- **config.py**: static settings from environment variables (.env support)
- **manager.py**: balance values from YAML with runtime overrides
- **errors.py**: configuration exception hierarchy
"""

from portal_economy.core.config.config import Config, Environment, StateBackend
from portal_economy.core.config.errors import (
    ConfigError,
    ConfigInitializationError,
    ConfigValidationError,
)
from portal_economy.core.config.manager import ConfigManager

__all__ = [
    "Config",
    "Environment",
    "StateBackend",
    "ConfigManager",
    "ConfigError",
    "ConfigInitializationError",
    "ConfigValidationError",
]
