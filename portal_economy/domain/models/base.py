"""
Validation primitives shared by the domain value objects.

Domain models are frozen dataclasses; each validates its invariants in
``__post_init__`` and raises ``DomainValidationError`` on violation.
Transitions never mutate, they return new instances via
``dataclasses.replace``.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional, Union

Number = Union[int, float]


class DomainValidationError(Exception):
    """
    Exception raised when domain model validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message
    field : Optional[str]
        Field name that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def validate_positive(value: Number, field_name: str) -> None:
    """
    Validate that a value is finite and strictly positive.

    Raises
    ------
    DomainValidationError
        If value is not positive, or is NaN or infinite
    """
    if not math.isfinite(value) or value <= 0:
        raise DomainValidationError(
            f"{field_name} must be a finite positive number, got {value}",
            field=field_name,
        )


def validate_non_negative(value: Number, field_name: str) -> None:
    """
    Validate that a value is finite and non-negative.

    Raises
    ------
    DomainValidationError
        If value is negative, or is NaN or infinite
    """
    if not math.isfinite(value) or value < 0:
        raise DomainValidationError(
            f"{field_name} must be a finite non-negative number, got {value}",
            field=field_name,
        )


def validate_range(value: int, min_val: int, max_val: int, field_name: str) -> None:
    """
    Validate that a value is within an inclusive range.

    Raises
    ------
    DomainValidationError
        If value is outside the range
    """
    if not (min_val <= value <= max_val):
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field=field_name,
        )


def validate_aware(value: datetime, field_name: str) -> None:
    """Reject naive datetimes; every timestamp in the model is UTC-aware."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise DomainValidationError(
            f"{field_name} must be timezone-aware, got naive {value.isoformat()}",
            field=field_name,
        )
