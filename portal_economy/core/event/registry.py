"""
Listener registry for exact event names and wildcard patterns.

Wildcards match whole dot-separated segments: ``"character.*"`` matches
``"character.unlocked"`` and ``"*"`` matches everything. Listeners are kept
sorted by (priority, identifier) so dispatch order is deterministic.

Not thread-safe; all mutations happen on the owning event loop.
"""

from __future__ import annotations

from portal_economy.core.event.types import EventListener


def pattern_matches(event_name: str, pattern: str) -> bool:
    """
    Segment-wise wildcard match.

    >>> pattern_matches("character.unlocked", "character.*")
    True
    >>> pattern_matches("character.unlocked", "player.*")
    False
    >>> pattern_matches("economy.state_changed", "*")
    True
    """
    if pattern == "*":
        return True
    if "*" not in pattern:
        return event_name == pattern

    name_parts = event_name.split(".")
    pattern_parts = pattern.split(".")
    if len(name_parts) != len(pattern_parts):
        return False
    return all(p == "*" or p == n for n, p in zip(name_parts, pattern_parts))


class ListenerRegistry:
    """Storage and lookup for event listeners."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._wildcard_listeners: list[tuple[str, EventListener]] = []

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        *,
        allow_duplicates: bool,
    ) -> bool:
        """Register a listener; returns False when prevented as a duplicate."""
        if "*" in event_name:
            if not allow_duplicates and any(
                pattern == event_name and lst.identifier == listener.identifier
                for pattern, lst in self._wildcard_listeners
            ):
                return False
            self._wildcard_listeners.append((event_name, listener))
            self._wildcard_listeners.sort(key=lambda pl: (pl[1].priority.value, pl[1].identifier))
            return True

        listeners = self._listeners.setdefault(event_name, [])
        if not allow_duplicates and any(lst.identifier == listener.identifier for lst in listeners):
            return False

        listeners.append(listener)
        listeners.sort(key=lambda lst: (lst.priority.value, lst.identifier))
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        removed = False

        if event_name in self._listeners:
            before = len(self._listeners[event_name])
            self._listeners[event_name] = [
                lst for lst in self._listeners[event_name] if lst.identifier != identifier
            ]
            removed = len(self._listeners[event_name]) < before
            if not self._listeners[event_name]:
                del self._listeners[event_name]

        before_wildcards = len(self._wildcard_listeners)
        self._wildcard_listeners = [
            (pattern, lst)
            for pattern, lst in self._wildcard_listeners
            if not (pattern == event_name and lst.identifier == identifier)
        ]
        return removed or len(self._wildcard_listeners) < before_wildcards

    def extract_listeners_for_event(self, event_name: str) -> list[EventListener]:
        """
        Collect listeners matching ``event_name`` in dispatch order.

        One-shot listeners are removed from the registry here, before they
        run, so a re-entrant publish cannot fire them twice.
        """
        matched = list(self._listeners.get(event_name, []))
        matched.extend(
            lst for pattern, lst in self._wildcard_listeners if pattern_matches(event_name, pattern)
        )
        matched.sort(key=lambda lst: (lst.priority.value, lst.identifier))

        for listener in matched:
            if listener.once:
                self.remove_listener(event_name, listener.identifier)
                for pattern, lst in list(self._wildcard_listeners):
                    if lst is listener:
                        self.remove_listener(pattern, listener.identifier)

        return matched

    def count(self) -> int:
        return sum(len(v) for v in self._listeners.values()) + len(self._wildcard_listeners)

    def clear_all(self) -> int:
        total = self.count()
        self._listeners.clear()
        self._wildcard_listeners.clear()
        return total
