"""
StateStore: the single owner of a player's economy state.

Purpose
-------
Hold the current immutable ``PlayerState`` and serialize every transition
through one gate. Services never touch state directly; they hand the store
a pure updater function.

Mutation Pipeline
-----------------
Under a single ``asyncio.Lock``:

1. ``updater(current)`` computes the next state (may raise; nothing changes)
2. ``last_online`` is stamped with the clock's ``now()``
3. The in-memory snapshot is swapped
4. The record is persisted; a failure is logged and reported but the new
   state is kept

After the lock is released, ``economy.state_changed`` is published with the
previous and current snapshots, followed by ``economy.persistence_failed``
when the write did not succeed.

An updater that returns the current snapshot object unchanged is a no-op:
no stamp, no write, no event.

Loading
-------
``load()`` never raises. Absent, corrupt, or unreadable snapshots fall
back to ``PlayerState.default(now)``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Callable, Optional

from portal_economy.core.clock import Clock
from portal_economy.core.event.bus import EventBus
from portal_economy.core.exceptions import PersistenceError, StateCorruptionError
from portal_economy.core.logging.logger import get_logger
from portal_economy.domain.models import PlayerState
from portal_economy.modules.shared.constants import (
    EVENT_PERSISTENCE_FAILED,
    EVENT_STATE_CHANGED,
)
from portal_economy.modules.state.codec import from_record, to_record
from portal_economy.modules.state.persistence import StatePersistence

logger = get_logger(__name__)

Updater = Callable[[PlayerState], PlayerState]


@dataclass(frozen=True)
class StateChange:
    """Result of a committed mutation."""

    previous: PlayerState
    current: PlayerState
    operation: str
    persisted: bool = True

    @property
    def changed(self) -> bool:
        return self.previous is not self.current


class StateStore:
    """
    Examples
    --------
    >>> store = StateStore(InMemoryPersistence(), SystemClock(), EventBus())
    >>> await store.load()
    >>> change = await store.mutate(lambda s: s.with_coins(s.coins + 10), operation="credit")
    >>> change.current.coins
    10
    """

    def __init__(self, persistence: StatePersistence, clock: Clock, event_bus: EventBus) -> None:
        self._persistence = persistence
        self._clock = clock
        self._events = event_bus
        self._lock = asyncio.Lock()
        self._state: Optional[PlayerState] = None
        self._failed_writes = 0

    @property
    def snapshot(self) -> PlayerState:
        if self._state is None:
            raise RuntimeError("StateStore.load() must run before reading the snapshot")
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def failed_writes(self) -> int:
        return self._failed_writes

    async def load(self) -> PlayerState:
        """Read the stored snapshot or fall back to defaults."""
        async with self._lock:
            self._state = await self._read_or_default()
            return self._state

    async def _read_or_default(self) -> PlayerState:
        backend = getattr(self._persistence, "name", type(self._persistence).__name__)
        try:
            record = await self._persistence.load()
        except PersistenceError as exc:
            logger.warning(
                "Snapshot unreadable; starting from defaults",
                extra={
                    "backend": backend,
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                },
            )
            return PlayerState.default(self._clock.now())
        except StateCorruptionError as exc:
            logger.warning(
                "Stored snapshot is corrupt; starting from defaults",
                extra={
                    "backend": backend,
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                },
            )
            return PlayerState.default(self._clock.now())

        if record is None:
            logger.info("No stored snapshot; starting from defaults", extra={"backend": backend})
            return PlayerState.default(self._clock.now())

        try:
            state = from_record(record)
        except StateCorruptionError as exc:
            logger.warning(
                "Stored snapshot failed validation; starting from defaults",
                extra={
                    "backend": backend,
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                },
            )
            return PlayerState.default(self._clock.now())

        logger.info(
            "Snapshot loaded",
            extra={
                "backend": backend,
                "level": state.level,
                "coins": state.coins,
                "character_count": len(state.unlocked_characters),
            },
        )
        return state

    async def mutate(self, updater: Updater, *, operation: str = "mutate") -> StateChange:
        """
        Apply ``updater`` atomically.

        Raises
        ------
        Exception
            Whatever ``updater`` raises; the state is left unchanged.
        """
        persist_error: Optional[PersistenceError] = None

        async with self._lock:
            previous = self.snapshot
            candidate = updater(previous)
            if candidate is previous:
                return StateChange(previous=previous, current=previous, operation=operation)

            current = replace(candidate, last_online=self._clock.now())
            self._state = current

            try:
                # A cancelled caller must not abort a write already in flight
                await asyncio.shield(self._persistence.save(to_record(current)))
            except PersistenceError as exc:
                self._failed_writes += 1
                persist_error = exc
                logger.error(
                    "Snapshot write failed; keeping in-memory state",
                    extra={
                    "operation": operation,
                    "error_code": exc.error_code,
                    "error_message": exc.message,
                },
                )

        change = StateChange(
            previous=previous,
            current=current,
            operation=operation,
            persisted=persist_error is None,
        )

        await self._events.publish(
            EVENT_STATE_CHANGED,
            {"previous": previous, "current": current, "operation": operation},
        )
        if persist_error is not None:
            await self._events.publish(
                EVENT_PERSISTENCE_FAILED,
                {"operation": operation, "error": persist_error.to_dict()},
            )
        return change
