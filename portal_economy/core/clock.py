"""
Clock port.

Everything time-dependent (ticks, offline accrual, daily streaks, shop
rotation, fusion ids) reads time through a ``Clock`` so tests can drive it
with a manual implementation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
