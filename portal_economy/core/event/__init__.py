"""
Event system for Portal Economy.

The engine constructs and owns its EventBus; nothing here is a global.
"""

from .bus import EventBus
from .registry import ListenerRegistry, pattern_matches
from .types import CallbackType, EventListener, EventPayload, ListenerPriority

__all__ = [
    "EventBus",
    "ListenerRegistry",
    "pattern_matches",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
