"""
ConfigManager: balance configuration for Portal Economy.

Purpose
-------
Expose tunable game-balance values (tick interval, offline rate, costs,
bonuses, shop pool) through dot-notation keys. Values come from YAML files
under the config directory, deep-merged in file order, with optional runtime
overrides layered on top.

Precedence
----------
caller default < YAML files < runtime overrides

Design Notes
------------
- Class-level singleton, mirroring the static ``Config``.
- Reading before ``initialize()`` lazily loads the YAML defaults once.
- Missing directory or invalid YAML never aborts startup; the caller's
  default is used instead and the problem is logged.
- Overrides exist for live tuning and for tests; ``reset()`` drops them.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

import yaml

from portal_economy.core.config.config import Config
from portal_economy.core.config.errors import ConfigInitializationError


logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Balance configuration with YAML defaults and runtime overrides.

    Examples
    --------
    >>> ConfigManager.initialize()
    >>> ConfigManager.get("economy.income.tick_interval_seconds", 60)
    60
    >>> ConfigManager.set_override("economy.daily.base_bonus", 75)
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None

    _gets: int = 0
    _misses: int = 0

    # =========================================================================
    # YAML LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge ``source`` into ``target`` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> int:
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        return loaded_count

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None, *, force: bool = False) -> None:
        """
        Load YAML defaults (idempotent unless ``force`` is set).

        Raises
        ------
        ConfigInitializationError
            If ``config_dir`` is given explicitly but is not a directory.
        """
        if cls._initialized and not force:
            return

        directory = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
        if config_dir is not None and not directory.is_dir():
            raise ConfigInitializationError(
                f"Config directory does not exist: {directory}"
            )

        cls._defaults = {}
        loaded = cls._load_yaml_configs(directory)
        cls._config_dir = directory
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "config_dir": str(directory),
                "yaml_file_count": loaded,
                "top_level_keys": sorted(cls._defaults.keys()),
            },
        )

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and loaded YAML; the next read reloads lazily."""
        cls._defaults = {}
        cls._overrides = {}
        cls._initialized = False
        cls._config_dir = None
        cls._gets = 0
        cls._misses = 0

    # =========================================================================
    # ACCESS
    # =========================================================================

    @classmethod
    def _traverse(cls, source: Mapping[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return _MISSING
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("economy.collection.upgrade_cost_per_level", 100)
        100
        """
        if not cls._initialized:
            cls.initialize()

        cls._gets += 1

        if key in cls._overrides:
            return cls._overrides[key]

        value = cls._traverse(cls._defaults, key)
        if value is _MISSING or value is None:
            cls._misses += 1
            return default
        return value

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """Override a single dot-notation key at runtime."""
        cls._overrides[key] = value
        logger.info("Config override applied", extra={"config_key": key})

    @classmethod
    def clear_override(cls, key: str) -> None:
        cls._overrides.pop(key, None)

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "config_dir": str(cls._config_dir) if cls._config_dir else None,
            "override_count": len(cls._overrides),
            "gets": cls._gets,
            "misses": cls._misses,
        }
