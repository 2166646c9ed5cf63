"""
Event system for Typhon.

Provides the listener store, event name resolution and a dispatcher with
several trigger strategies for synchronous and asynchronous listeners.
"""

from .dispatcher import EventDispatcher
from .names import resolve_names
from .store import Events
from .types import ALL_EVENTS, ListenerRecord

__all__ = [
    "ALL_EVENTS",
    "EventDispatcher",
    "Events",
    "ListenerRecord",
    "resolve_names",
]
