"""In-process publish/subscribe event dispatching."""

from .events import ALL_EVENTS, EventDispatcher, Events, ListenerRecord

__all__ = [
    "ALL_EVENTS",
    "EventDispatcher",
    "Events",
    "ListenerRecord",
]
