"""Listener store type definitions."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

# Reserved channel whose listeners receive every fired event
ALL_EVENTS = "all"

Listener = Callable[..., Any]

# A single name, whitespace separated names, or a name -> handler mapping
EventName = Union[str, Mapping[str, Any], None]


@dataclass(eq=False)
class ListenerRecord:
    """One registration of a callback under an event name.

    ``context`` is the explicit binding target passed at registration and is
    handed to the callback as its receiver. ``ctx`` falls back to the host
    object and is what ``off(context=...)`` matches against.
    """

    callback: Listener
    context: Any = None
    ctx: Any = None
    # The once-wrapper keeps the caller's callback here so off() can match it
    original: Optional[Listener] = None

    def invoke(self, args: tuple) -> Any:
        if self.context is not None:
            return self.callback(self.context, *args)
        return self.callback(*args)

    def matches(self, callback: Optional[Listener], context: Any) -> bool:
        if callback is not None and callback not in (self.callback, self.original):
            return False
        if context is not None and context is not self.ctx:
            return False
        return True


ListenerStore = Dict[str, List[ListenerRecord]]
