"""
Infrastructure exceptions for Portal Economy.

Purpose
-------
Structured exceptions for engineering-level failures: storage reads and
writes, unparsable snapshots, and the remote character catalog. Game rule
violations live in ``portal_economy.modules.shared.exceptions``.

Design Notes
------------
- All infrastructure exceptions inherit from ``PortalInfrastructureException``.
- Each exception carries ``message``, ``details``, ``severity``,
  ``is_retryable`` and ``error_code``, mirroring the domain hierarchy so both
  can be logged through the same helpers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning
    INFO = "info"  # Normal operation (e.g., rule rejections)
    WARNING = "warning"  # Concerning but handled
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures


class PortalInfrastructureException(Exception):
    """
    Base exception for infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
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


class PersistenceError(PortalInfrastructureException):
    """
    Raised when the storage backend fails to read or write a snapshot.

    Args:
        operation: "load" or "save"
        backend: Adapter name (memory, file, redis)
        reason: Underlying failure description
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, backend: str, reason: str) -> None:
        self.operation = operation
        self.backend = backend
        self.reason = reason
        super().__init__(
            f"Persistence {operation} failed on {backend} backend: {reason}",
            details={"operation": operation, "backend": backend, "reason": reason},
            error_code=f"PERSISTENCE_{operation.upper()}_FAILED",
        )


class StateCorruptionError(PortalInfrastructureException):
    """Raised when a stored snapshot cannot be decoded into a valid state."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(self, reason: str, field: Optional[str] = None) -> None:
        self.reason = reason
        self.field = field
        message = f"Stored state is corrupt: {reason}"
        if field:
            message = f"Stored state is corrupt at '{field}': {reason}"
        super().__init__(
            message,
            details={"reason": reason, "field": field},
            error_code="STATE_CORRUPTION",
        )


class CatalogError(PortalInfrastructureException):
    """
    Raised when the remote character catalog cannot be read.

    Args:
        reason: Failure description
        status_code: HTTP status, when a response was received
        is_retryable: Whether another attempt may succeed
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(
        self,
        reason: str,
        *,
        status_code: Optional[int] = None,
        is_retryable: bool = False,
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(
            f"Catalog request failed: {reason}",
            details={"reason": reason, "status_code": status_code},
            is_retryable=is_retryable,
            error_code="CATALOG_UNAVAILABLE",
        )
