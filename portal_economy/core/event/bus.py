"""
EventBus: async pub/sub with tiered concurrency.

Responsibilities
----------------
- Register/unregister listeners with priorities (exact names and wildcards)
- Publish events to every matching listener
- Execute listeners by tier:
  * CRITICAL / HIGH: sequential, in order, awaited
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks, tracked until done
- Isolate listener errors so one failure never blocks the others

Design Decisions
----------------
- Instance-based; the engine owns its bus, there is no global singleton.
- Sync callbacks run in the default executor so they cannot stall the loop.
- Designed for single-threaded asyncio usage; registry mutations happen
  between awaits.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Optional

from portal_economy.core.event.registry import ListenerRegistry
from portal_economy.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from portal_economy.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EventMetrics:
    events_published: int = 0
    listener_invocations: int = 0
    listener_errors: int = 0


class EventBus:
    """
    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("player.leveled_up", on_level_up, priority=ListenerPriority.HIGH)
    >>> await bus.publish("player.leveled_up", {"new_level": 2})
    """

    def __init__(self, registry: Optional[ListenerRegistry] = None) -> None:
        self._registry = registry or ListenerRegistry()
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._metrics = EventMetrics()

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe a callback; returns the listener identifier.

        Raises
        ------
        ValueError
            If the callback does not take exactly one parameter.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
        added = self._registry.add_listener(event_name, listener, allow_duplicates=allow_duplicates)

        if added:
            logger.debug(
                "EventBus: subscribed listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        return self._registry.remove_listener(event_name, identifier)

    def clear(self) -> None:
        total = self._registry.clear_all()
        logger.info("EventBus: cleared all listeners", extra={"previous_listener_count": total})

    def listener_count(self) -> int:
        return self._registry.count()

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to all subscribed listeners.

        Returns the results of CRITICAL/HIGH/NORMAL listeners in dispatch
        order; LOW listeners run in the background and are not included.
        Failed listeners contribute ``None``.
        """
        self._metrics.events_published += 1
        listeners = self._registry.extract_listeners_for_event(event_name)
        if not listeners:
            return []

        results: list[Any] = []

        for listener in listeners:
            if listener.priority in (ListenerPriority.CRITICAL, ListenerPriority.HIGH):
                results.append(await self._run_listener(listener, event_name, data))

        normal = [lst for lst in listeners if lst.priority == ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(*(self._run_listener(lst, event_name, data) for lst in normal))
            )

        loop = asyncio.get_running_loop()
        for listener in (lst for lst in listeners if lst.priority == ListenerPriority.LOW):
            task = loop.create_task(
                self._run_listener(listener, event_name, data),
                name=f"eventbus-low-{event_name}-{listener.identifier}",
            )
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
    ) -> Any:
        self._metrics.listener_invocations += 1
        try:
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)
        except Exception as exc:
            self._metrics.listener_errors += 1
            logger.error(
                "EventBus listener failed and was isolated",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------ #
    # Lifecycle / Introspection
    # ------------------------------------------------------------------ #

    async def drain(self, timeout: Optional[float] = 5.0) -> None:
        """Wait for in-flight LOW-tier listeners; cancel stragglers after ``timeout``."""
        if not self._background_tasks:
            return

        pending = set(self._background_tasks)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(
                "EventBus: cancelled background listeners on drain",
                extra={"cancelled_count": len(still_running)},
            )

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)

    def get_metrics(self) -> dict[str, int]:
        return {
            "events_published": self._metrics.events_published,
            "listener_invocations": self._metrics.listener_invocations,
            "listener_errors": self._metrics.listener_errors,
            "listener_count": self._registry.count(),
            "background_tasks": len(self._background_tasks),
        }
