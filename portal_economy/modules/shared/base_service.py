"""
Base Service Foundation

Purpose
-------
Common base for the economy services. Services hold the business rules:
they read balance values from ConfigManager, run their transitions through
the StateStore, and publish domain events after a transition is committed.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers

What this class does NOT do:
- Own or mutate state directly (that's StateStore's job)
- Persist anything
- Contain game-specific rules

Usage
-----
    class DailyService(BaseService):
        def __init__(self, store, clock, config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self._store = store

        async def claim_daily_bonus(self) -> int:
            # Service logic here, using self.log, self.get_config, self.emit_event
            ...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from portal_economy.core.exceptions import ErrorSeverity
from portal_economy.modules.shared.exceptions import get_error_severity

if TYPE_CHECKING:
    from logging import Logger

    from portal_economy.core.config.manager import ConfigManager
    from portal_economy.core.event.bus import EventBus


_SEVERITY_LEVELS: Dict[ErrorSeverity, int] = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class BaseService:
    """
    Base class for all economy services.

    Args:
        config_manager: Balance configuration (the ConfigManager class)
        event_bus: Event bus owned by the engine
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(self, key: str, default: Optional[Any] = None) -> Any:
        """Balance value for ``key``; YAML and overrides win over ``default``."""
        return self._config.get(key, default)

    async def emit_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Publish a domain event once its transition is committed."""
        await self._events.publish(event_type, data)

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"{self.__class__.__name__}.{operation}",
            extra={"operation": operation, **context},
        )

    def log_rejection(self, operation: str, error: Exception, **context: Any) -> None:
        """Log a rule violation that is about to be raised to the caller."""
        self.log.log(
            _SEVERITY_LEVELS[get_error_severity(error)],
            f"{self.__class__.__name__}.{operation} rejected: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                **context,
            },
        )
