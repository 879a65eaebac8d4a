"""
Configuration error hierarchy.

ConfigError (base)
├── ConfigValidationError (value has the wrong type or range)
└── ConfigInitializationError (startup/load failures)
"""


class ConfigError(Exception):
    """Base exception for all configuration-related errors."""


class ConfigValidationError(ConfigError):
    """Raised when a configuration value fails validation."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for '{key}': {reason}")


class ConfigInitializationError(ConfigError):
    """Raised when configuration cannot be loaded at startup."""
