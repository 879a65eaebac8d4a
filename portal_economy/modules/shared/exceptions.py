"""
Domain exceptions for Portal Economy.

Purpose
-------
Structured, domain-specific exceptions raised by the services when an
operation violates an economy rule. A rejected operation always leaves the
player state untouched; callers catch these to tell the player why.

Design Notes
------------
- All domain exceptions inherit from ``PortalDomainException``.
- Each exception carries:
  - ``message``: human-readable description
  - ``details``: additional structured context (dict-like)
  - ``severity``: ``ErrorSeverity`` value for logging/alerting
  - ``is_retryable``: whether the operation can be retried
  - ``error_code``: short, stable identifier for programmatic use
- ``get_error_severity`` and ``should_alert`` cover both domain and
  infrastructure exceptions.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from portal_economy.core.exceptions import ErrorSeverity, PortalInfrastructureException


class PortalDomainException(Exception):
    """
    Base exception for all economy rule violations.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise PortalDomainException(
        ...     "Fusion failed",
        ...     {"reason": "parents missing"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class NotFoundError(PortalDomainException):
    """
    Raised when a referenced character or shop offer does not exist.

    Args:
        resource_type: Type of resource (e.g., "Character", "ShopOffer")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class InsufficientFundsError(PortalDomainException):
    """
    Raised when the player cannot afford an operation.

    Args:
        required: Coins the operation costs
        current: Coins the player holds
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, required: float, current: float) -> None:
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient coins: need {required:,.0f}, have {current:,.0f}",
            details={
                "resource": "coins",
                "required": required,
                "current": current,
                "deficit": required - current,
            },
            error_code="INSUFFICIENT_COINS",
        )


class ProtectedAssetError(PortalDomainException):
    """Raised when an operation targets a character that may not be removed."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, character_id: Any, reason: str) -> None:
        self.character_id = character_id
        self.reason = reason
        super().__init__(
            f"Character {character_id} is protected: {reason}",
            details={"character_id": character_id, "reason": reason},
            error_code="PROTECTED_CHARACTER",
        )


class AlreadyClaimedError(PortalDomainException):
    """Raised when a level-up reward has already been collected."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, level: int) -> None:
        self.level = level
        super().__init__(
            f"Reward for level {level} was already claimed",
            details={"level": level},
            error_code="LEVEL_REWARD_ALREADY_CLAIMED",
        )


class AlreadyClaimedTodayError(PortalDomainException):
    """Raised when the daily bonus was already claimed on the current UTC day."""

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, claimed_on: date) -> None:
        self.claimed_on = claimed_on
        super().__init__(
            f"Daily bonus already claimed on {claimed_on.isoformat()}",
            details={"claimed_on": claimed_on.isoformat()},
            error_code="DAILY_BONUS_ALREADY_CLAIMED",
        )


class LevelRequirementError(PortalDomainException):
    """
    Raised when the player's level is below what an operation needs.

    Args:
        action: Operation that was attempted
        required_level: Minimum level for the operation
        current_level: Player's level
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, required_level: int, current_level: int) -> None:
        self.action = action
        self.required_level = required_level
        self.current_level = current_level
        super().__init__(
            f"'{action}' requires level {required_level}, player is level {current_level}",
            details={
                "action": action,
                "required_level": required_level,
                "current_level": current_level,
            },
            error_code="LEVEL_TOO_LOW",
        )


class ShopLockedError(PortalDomainException):
    """Raised when the shop is used before the player reaches its unlock level."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, unlock_level: int, current_level: int) -> None:
        self.unlock_level = unlock_level
        self.current_level = current_level
        super().__init__(
            f"The shop unlocks at level {unlock_level}, player is level {current_level}",
            details={"unlock_level": unlock_level, "current_level": current_level},
            error_code="SHOP_LOCKED",
        )


class ValidationError(PortalDomainException):
    """
    Raised when caller input is malformed.

    Args:
        field: Name of the offending argument
        message: Description of the problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            f"Invalid {field}: {message}",
            details={"field": field},
            error_code="VALIDATION_ERROR",
        )


class InvalidOperationError(PortalDomainException):
    """
    Raised when an operation violates a game rule not covered above.

    Example:
        >>> raise InvalidOperationError("fuse_characters", "cannot fuse a character with itself")
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


# Utility functions for exception handling patterns


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Severity for logging; unknown exceptions count as ERROR."""
    if isinstance(exc, (PortalDomainException, PortalInfrastructureException)):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
