"""
Static configuration management for Portal Economy.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles settings that are fixed for the lifetime of the process.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment versus defaults

Non-Responsibilities
--------------------
- Game balance values (handled by ConfigManager / YAML)
- Persistence (handled by the state persistence adapters)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- ``Config.load()`` re-reads the environment; it runs once on import
- Directory paths are relative to the project root for portability

Environment Variables
---------------------
- ENVIRONMENT: development | testing | staging | production
- LOG_LEVEL, LOG_JSON, LOG_COLORS, LOGS_DIR
- CONFIG_DIR: directory holding balance YAML files
- STATE_BACKEND: memory | file | redis (default: file)
- STATE_FILE_PATH: JSON snapshot path for the file backend
- REDIS_URL: connection string for the redis backend
- PROFILE_ID: profile key the engine owns (default: "default")
- CATALOG_BASE_URL, CATALOG_TIMEOUT_SECONDS: remote character catalog
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized yet during bootstrap
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


class StateBackend(Enum):
    """Persistence backends understood by ``build_engine``."""

    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class _ConfigLoadMetrics:
    """Tracks which configuration values came from the environment."""

    def __init__(self) -> None:
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}

    def record_env_load(self, key: str, from_env: bool) -> None:
        self.env_vars_loaded[key] = from_env

    def record_validation_error(self, key: str, error: str) -> None:
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "validation_errors": dict(self.validation_errors),
        }


class Config:
    """
    Centralized static configuration for the economy engine.

    Usage
    -----
    >>> Config.STATE_BACKEND
    <StateBackend.FILE: 'file'>
    >>> Config.is_production()
    False
    """

    _metrics: _ConfigLoadMetrics = _ConfigLoadMetrics()

    # =========================================================================
    # Environment
    # =========================================================================

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    # =========================================================================
    # Directories
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    CONFIG_DIR: Path = PROJECT_ROOT / "config"

    # =========================================================================
    # Persistence
    # =========================================================================

    STATE_BACKEND: StateBackend = StateBackend.FILE
    STATE_FILE_PATH: Path = PROJECT_ROOT / "data" / "player_state.json"
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "portal_economy:state"
    PROFILE_ID: str = "default"

    # =========================================================================
    # Catalog
    # =========================================================================

    CATALOG_BASE_URL: str = "https://rickandmortyapi.com/api"
    CATALOG_TIMEOUT_SECONDS: float = 10.0
    CATALOG_RETRIES: int = 2

    # =========================================================================
    # Parsing helpers
    # =========================================================================

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        raw_value = os.getenv(key)
        cls._metrics.record_env_load(key, raw_value is not None)
        if raw_value is None or not raw_value.strip():
            return default
        return raw_value.strip()

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Parse an integer from the environment with bounds checking.

        Out-of-range and unparsable values fall back to ``default`` and are
        recorded as validation errors.
        """
        raw_value = os.getenv(key)
        cls._metrics.record_env_load(key, raw_value is not None)
        if raw_value is None:
            return default

        try:
            value = int(raw_value)
        except ValueError:
            error = f"{key}='{raw_value}' is not a valid integer, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        if (min_val is not None and value < min_val) or (
            max_val is not None and value > max_val
        ):
            error = f"{key}={value} is outside [{min_val}, {max_val}], using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        return value

    @classmethod
    def _safe_float(cls, key: str, default: float, min_val: float = 0.0) -> float:
        raw_value = os.getenv(key)
        cls._metrics.record_env_load(key, raw_value is not None)
        if raw_value is None:
            return default

        try:
            value = float(raw_value)
        except ValueError:
            error = f"{key}='{raw_value}' is not a valid number, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default

        if value < min_val:
            error = f"{key}={value} is below minimum {min_val}, using default {default}"
            logging.warning(error)
            cls._metrics.record_validation_error(key, error)
            return default
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """Recognizes true/false, yes/no, 1/0, on/off (case-insensitive)."""
        raw_value = os.getenv(key)
        cls._metrics.record_env_load(key, raw_value is not None)
        if raw_value is None:
            return default

        normalized = raw_value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False

        error = f"{key}='{raw_value}' is not a valid boolean, using default {default}"
        logging.warning(error)
        cls._metrics.record_validation_error(key, error)
        return default

    @classmethod
    def _safe_path(cls, key: str, default: Path) -> Path:
        raw_value = os.getenv(key)
        cls._metrics.record_env_load(key, raw_value is not None)
        if not raw_value:
            return default
        path = Path(raw_value).expanduser()
        return path if path.is_absolute() else cls.PROJECT_ROOT / path

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """Read every setting from the environment."""
        cls._metrics = _ConfigLoadMetrics()

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        cls.LOGS_DIR = cls._safe_path("LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.CONFIG_DIR = cls._safe_path("CONFIG_DIR", cls.PROJECT_ROOT / "config")

        backend = cls._safe_str("STATE_BACKEND", StateBackend.FILE.value).lower()
        try:
            cls.STATE_BACKEND = StateBackend(backend)
        except ValueError:
            error = f"STATE_BACKEND='{backend}' is not supported, using file"
            logging.warning(error)
            cls._metrics.record_validation_error("STATE_BACKEND", error)
            cls.STATE_BACKEND = StateBackend.FILE

        cls.STATE_FILE_PATH = cls._safe_path(
            "STATE_FILE_PATH", cls.PROJECT_ROOT / "data" / "player_state.json"
        )
        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_KEY_PREFIX = cls._safe_str("REDIS_KEY_PREFIX", "portal_economy:state")
        cls.PROFILE_ID = cls._safe_str("PROFILE_ID", "default")

        cls.CATALOG_BASE_URL = cls._safe_str(
            "CATALOG_BASE_URL", "https://rickandmortyapi.com/api"
        ).rstrip("/")
        cls.CATALOG_TIMEOUT_SECONDS = cls._safe_float("CATALOG_TIMEOUT_SECONDS", 10.0)
        cls.CATALOG_RETRIES = cls._safe_int("CATALOG_RETRIES", 2, min_val=0, max_val=10)

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-secret summary suitable for a startup log line."""
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "state_backend": cls.STATE_BACKEND.value,
            "profile_id": cls.PROFILE_ID,
            "config_dir": str(cls.CONFIG_DIR),
            "catalog_base_url": cls.CATALOG_BASE_URL,
            **cls._metrics.get_summary(),
        }


Config.load()
