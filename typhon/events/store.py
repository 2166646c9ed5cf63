"""Listener store and registration primitives.

``Events`` owns the ``name -> [ListenerRecord]`` mapping that the trigger
methods in :mod:`typhon.events.dispatcher` read from.
"""

from typing import Any, Optional

from ..config import settings
from ..logger import logger
from .names import resolve_names
from .types import EventName, Listener, ListenerRecord, ListenerStore


def _listener_name(callback: Any) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class _OnceListener:
    """Callable that unbinds itself from ``host`` before running ``callback``."""

    def __init__(self, host: "Events", name: str, callback: Listener):
        self.host = host
        self.name = name
        self.callback = callback
        self.fired = False

    def __call__(self, *args):
        if self.fired:
            return None
        self.fired = True
        self.host.off(self.name, self)
        return self.callback(*args)

    def __repr__(self) -> str:
        return f"<once {_listener_name(self.callback)} for {self.name!r}>"


class Events:
    """Host object holding registered listeners.

    Named listener lists are edited in place, so a trigger pass that is
    currently walking a list sees removals and additions made by the
    listeners it runs.
    """

    def __init__(self, eventbus_name: Optional[str] = None):
        self._events: Optional[ListenerStore] = None
        self._eventbus_name = (
            eventbus_name
            if eventbus_name is not None
            else settings.default_eventbus_name
        )

    # Event bus naming

    def get_eventbus_name(self) -> Optional[str]:
        """Return the name of this event bus."""
        return self._eventbus_name

    def set_eventbus_name(self, name: Optional[str]) -> None:
        """Set the name of this event bus."""
        self._eventbus_name = name

    eventbus_name = property(get_eventbus_name, set_eventbus_name)

    # Registration

    def on(self, name: EventName, callback: Any = None, context: Any = None):
        """Bind ``callback`` to one or more events.

        With the mapping form, ``on({"a": f, "b": g}, owner)``, the second
        argument is the context shared by every handler.
        """
        if self._events is None:
            self._events = {}
        self._events = resolve_names(
            self._on_api, self._events, name, callback, {"context": context}
        )
        return self

    def once(self, name: EventName, callback: Any = None, context: Any = None):
        """Bind listeners that unbind themselves before their first run."""
        wrappers = resolve_names(self._once_map, {}, name, callback)
        if isinstance(name, str) and context is None:
            callback = None
        return self.on(wrappers, callback, context)

    def off(
        self,
        name: EventName = None,
        callback: Optional[Listener] = None,
        context: Any = None,
    ):
        """Remove listeners matching every criterion given.

        ``off()`` drops all listeners, ``off("change")`` drops the listeners of
        one event, and ``callback`` / ``context`` narrow the match further.
        Passing the original callback also removes its ``once`` wrapper.
        """
        if not self._events:
            return self

        if name is None:
            if callback is None and context is None:
                logger.debug(f"Removing all listeners from event bus {self._eventbus_name!r}")
                self._events = None
                return self
            for single in list(self._events):
                self._off_api(self._events, single, callback, {"context": context})
            return self

        self._events = resolve_names(
            self._off_api, self._events, name, callback, {"context": context}
        )
        return self

    # Introspection

    def has_listeners(self, name: Optional[str] = None) -> bool:
        return self.listener_count(name) > 0

    def listener_count(self, name: Optional[str] = None) -> int:
        """Count listeners for ``name``, or across every event when omitted."""
        if not self._events:
            return 0
        if name is None:
            return sum(len(records) for records in self._events.values())
        return len(self._events.get(name, ()))

    # Iteratees for resolve_names

    def _on_api(
        self, events: ListenerStore, name: str, callback: Any, options: dict
    ) -> ListenerStore:
        if callback is None:
            return events
        if not callable(callback):
            raise TypeError(
                f"Listener for event {name!r} must be callable, "
                f"got {type(callback).__name__}"
            )

        context = options.get("context")
        record = ListenerRecord(
            callback=callback,
            context=context,
            ctx=context if context is not None else self,
            original=(
                callback.callback if isinstance(callback, _OnceListener) else None
            ),
        )
        events.setdefault(name, []).append(record)
        logger.debug(f"Registered {_listener_name(callback)} for event {name!r}")
        return events

    def _once_map(
        self, wrappers: dict, name: str, callback: Any, options: dict
    ) -> dict:
        if callback is None:
            return wrappers
        if not callable(callback):
            raise TypeError(
                f"Listener for event {name!r} must be callable, "
                f"got {type(callback).__name__}"
            )

        wrappers[name] = _OnceListener(self, name, callback)
        return wrappers

    def _off_api(
        self, events: ListenerStore, name: str, callback: Any, options: dict
    ) -> ListenerStore:
        records = events.get(name)
        if not records:
            return events

        context = options.get("context")
        before = len(records)
        records[:] = [r for r in records if not r.matches(callback, context)]
        if not records:
            del events[name]

        logger.debug(f"Removed {before - len(records)} listener(s) from event {name!r}")
        return events
