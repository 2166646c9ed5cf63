"""Event dispatcher - runs registered listeners under several trigger strategies.

- ``trigger``: invoke every listener, ignore results
- ``trigger_defer``: run ``trigger`` on a later event loop tick
- ``trigger_first``: stop at the first listener that returns a value
- ``trigger_results``: collect every returned value into a list
- ``trigger_then``: collect returned values and awaitables into one future

A listener "returns a value" when its result is not ``None``. Falsy results
such as ``0``, ``False`` or ``""`` count as values.
"""

import asyncio
import inspect
from typing import Any, Callable, Iterator, List, Optional, TypeVar

from ..config import settings
from ..logger import log_exception, logger
from .names import resolve_names
from .store import Events
from .types import ALL_EVENTS, EventName, ListenerRecord, ListenerStore

T = TypeVar("T")

# strategy(memo, events, name, args) -> memo
Strategy = Callable[[T, ListenerStore, str, tuple], T]


def _iterate_live(records: List[ListenerRecord]) -> Iterator[ListenerRecord]:
    """Walk ``records`` while listeners may be editing it.

    Records are only ever appended, so the ones already run always form a
    prefix of the list. After each listener the cursor moves past that
    prefix, which keeps removals of the current or earlier records from
    skipping the next one. Removing a later record skips it; appending makes
    it run in this pass.
    """
    visited = set()
    i = 0
    while i < len(records):
        record = records[i]
        visited.add(record)
        yield record
        if i < len(records) and records[i] is record:
            i += 1
            continue
        i = 0
        while i < len(records) and records[i] in visited:
            i += 1


def _matched(
    events: ListenerStore, name: str, args: tuple
) -> Iterator[tuple[ListenerRecord, tuple]]:
    """Yield ``(record, call_args)`` for ``name`` and then for the wildcard channel."""
    records = events.get(name)
    wildcard = events.get(ALL_EVENTS)
    # Snapshot before any listener of this name runs
    if wildcard:
        wildcard = list(wildcard)

    if records:
        for record in _iterate_live(records):
            yield record, args
    if wildcard:
        wildcard_args = (name, *args)
        for record in wildcard:
            yield record, wildcard_args


def _run_all(memo: None, events: ListenerStore, name: str, args: tuple) -> None:
    for record, call_args in _matched(events, name, args):
        record.invoke(call_args)
    return memo


def _run_first(memo: Any, events: ListenerStore, name: str, args: tuple) -> Any:
    # An earlier name already answered
    if memo is not None:
        return memo
    for record, call_args in _matched(events, name, args):
        result = record.invoke(call_args)
        if result is not None:
            return result
    return None


def _run_results(
    memo: List[Any], events: ListenerStore, name: str, args: tuple
) -> List[Any]:
    for record, call_args in _matched(events, name, args):
        result = record.invoke(call_args)
        if result is not None:
            memo.append(result)
    return memo


def _completed(loop: asyncio.AbstractEventLoop, value: Any) -> asyncio.Future:
    future = loop.create_future()
    future.set_result(value)
    return future


class EventDispatcher(Events):
    """Dispatches events to registered listeners.

    Listeners are called synchronously in registration order, named listeners
    first and then the ``"all"`` listeners with the event name prepended to
    their arguments. Create one instance per bus and pass it to whoever needs
    it; there is no shared default instance.
    """

    def __init__(
        self,
        eventbus_name: Optional[str] = None,
        defer_delay: Optional[float] = None,
    ):
        super().__init__(eventbus_name)
        self._defer_delay = (
            defer_delay if defer_delay is not None else settings.defer_delay
        )

    def _dispatch(self, strategy: Strategy[T], memo: T, name: EventName, args: tuple) -> T:
        events = self._events
        if not events:
            return memo

        def iteratee(acc: T, single: str, _callback: Any, _options: dict) -> T:
            return strategy(acc, events, single, args)

        return resolve_names(iteratee, memo, name)

    def trigger(self, name: EventName, *args: Any):
        """Invoke every listener of ``name``, ignoring return values.

        Listener exceptions propagate and stop the remaining listeners.
        """
        logger.debug(f"Triggering {name!r} on event bus {self._eventbus_name!r}")
        self._dispatch(_run_all, None, name, args)
        return self

    def trigger_defer(self, name: EventName, *args: Any):
        """Schedule ``trigger(name, *args)`` on a later tick of the running loop.

        Returns immediately. Errors raised by listeners during the deferred
        call are logged and dropped since nobody is left to receive them.

        Raises:
            RuntimeError: No event loop is running in this thread.
        """
        loop = asyncio.get_running_loop()
        if self._defer_delay > 0:
            loop.call_later(self._defer_delay, self._deferred_trigger, name, args)
        else:
            loop.call_soon(self._deferred_trigger, name, args)
        return self

    @log_exception("Deferred trigger of {name!r}")
    def _deferred_trigger(self, name: EventName, args: tuple) -> None:
        self.trigger(name, *args)

    def trigger_first(self, name: EventName, *args: Any) -> Any:
        """Return the first value returned by a listener, or ``None``.

        Listeners after the one that answered are not invoked.
        """
        return self._dispatch(_run_first, None, name, args)

    def trigger_results(self, name: EventName, *args: Any) -> List[Any]:
        """Invoke every listener and return their values in invocation order.

        ``None`` results are left out. Returns an empty list when nothing
        answered.
        """
        return self._dispatch(_run_results, [], name, args)

    def trigger_then(self, name: EventName, *args: Any) -> asyncio.Future:
        """Invoke every listener and aggregate the results into one future.

        Each collected value may be awaitable (a coroutine from an ``async def``
        listener, a task or future) or a plain value. The returned future
        resolves to the list of resolved values in invocation order and fails
        with the first failure among them. An exception raised while invoking
        the listeners fails the returned future instead of propagating.

        Raises:
            RuntimeError: No event loop is running in this thread. This is the
                only exception raised synchronously; no listener runs first.
        """
        loop = asyncio.get_running_loop()
        collected: List[Any] = []

        try:
            self._dispatch(_run_results, collected, name, args)
        except Exception as e:
            logger.debug(f"Listener for {name!r} raised during trigger_then: {e!r}")
            for value in collected:
                if inspect.iscoroutine(value):
                    value.close()
            failed = loop.create_future()
            failed.set_exception(e)
            return failed

        if not collected:
            return _completed(loop, [])

        return asyncio.gather(
            *(
                value if inspect.isawaitable(value) else _completed(loop, value)
                for value in collected
            )
        )
